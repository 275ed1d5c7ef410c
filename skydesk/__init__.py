from flask import Flask, jsonify
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from pydantic import ValidationError

from .config import Config
from .log import configure_logging

db = SQLAlchemy()
login_manager = LoginManager()


def create_app(overrides=None):
    config = Config.from_env().with_overrides(overrides)
    configure_logging(config)

    app = Flask(
        __name__,
        template_folder="../templates",
    )
    app.config.update(config.flask_settings())

    db.init_app(app)
    login_manager.init_app(app)

    from .services import build_services
    app.extensions.update(build_services(config))

    # every blueprint validates its JSON body with pydantic
    @app.errorhandler(ValidationError)
    def validation_failed(exc):
        from .schemas import error_list
        return jsonify({"ok": False, "error": "validation_error", "details": error_list(exc)}), 400

    @app.get("/api/health")
    def health():
        return jsonify({"ok": True, "env": config.APP_ENV, "printerMode": config.PRINTER_MODE})

    # register blueprints
    from .auth import auth_bp
    app.register_blueprint(auth_bp)

    from .calendar_routes import calendar_bp
    app.register_blueprint(calendar_bp)

    from .flights import flights_bp
    app.register_blueprint(flights_bp)

    from .booking import booking_bp
    app.register_blueprint(booking_bp)

    from .notifications import notifications_bp
    app.register_blueprint(notifications_bp)

    from .charter import charter_bp
    app.register_blueprint(charter_bp)

    # create tables
    with app.app_context():
        from . import models
        db.create_all()

    return app
