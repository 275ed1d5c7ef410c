"""Tests for configuration, logging setup and authentication."""

import logging
import os

import pytest

from skydesk.config import Config
from skydesk.log import EMAIL_LOGGER, configure_logging


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("PRINTER_MODE", "APP_ENV", "RENDER", "DATABASE_URL", "SENDGRID_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestConfig:
    def test_defaults_to_local_printer(self, clean_env):
        assert Config.from_env().PRINTER_MODE == "local"

    def test_hosted_environments_use_cloud_printing(self, clean_env):
        clean_env.setenv("RENDER", "true")
        assert Config.from_env().PRINTER_MODE == "cloud"

    def test_production_uses_cloud_printing(self, clean_env):
        clean_env.setenv("APP_ENV", "production")
        cfg = Config.from_env()
        assert cfg.PRINTER_MODE == "cloud"
        assert cfg.is_production

    def test_explicit_mode_wins(self, clean_env):
        clean_env.setenv("RENDER", "true")
        clean_env.setenv("PRINTER_MODE", "local")
        assert Config.from_env().PRINTER_MODE == "local"

    def test_secrets_come_from_environment(self, clean_env):
        clean_env.setenv("SENDGRID_API_KEY", "SG.from-env")
        assert Config.from_env().SENDGRID_API_KEY == "SG.from-env"
        clean_env.delenv("SENDGRID_API_KEY")
        assert Config.from_env().SENDGRID_API_KEY is None

    def test_overrides(self):
        cfg = Config().with_overrides({"PRINTER_MODE": "cloud", "SSE_KEEPALIVE_SECONDS": 1})
        assert cfg.PRINTER_MODE == "cloud"
        assert cfg.extra == {"SSE_KEEPALIVE_SECONDS": 1}
        settings = cfg.flask_settings()
        assert settings["SSE_KEEPALIVE_SECONDS"] == 1
        assert "extra" not in settings

    def test_bad_printer_mode(self):
        with pytest.raises(ValueError):
            Config().with_overrides({"PRINTER_MODE": "wifi"})


def test_logging_files(tmp_path):
    cfg = Config(LOG_DIR=str(tmp_path), APP_ENV="production")
    logger = configure_logging(cfg)
    logging.getLogger("skydesk.booking").error("booking failed")
    logging.getLogger(EMAIL_LOGGER).info("email sent to marie@example.com")
    for handler in logger.handlers + logging.getLogger(EMAIL_LOGGER).handlers:
        handler.flush()

    errors = (tmp_path / "errors.log").read_text()
    emails = (tmp_path / "emails.log").read_text()
    assert "[ERROR] booking failed" in errors
    assert "email sent" in emails
    assert "email sent" not in errors
    # production keeps the console quiet
    assert not any(type(h) is logging.StreamHandler for h in logger.handlers)


def test_login_logout(client, admin_client):
    me = admin_client.get("/api/me").get_json()
    assert me["user"]["role"] == "admin"
    assert admin_client.post("/api/logout").get_json() == {"ok": True}
    assert admin_client.get("/api/me").status_code == 401


def test_bad_password(client, admin_client):
    resp = client.post("/api/login", json={"email": "admin@skydesk.test", "password": "nope"})
    assert resp.status_code == 401


def test_health(client):
    body = client.get("/api/health").get_json()
    assert body == {"ok": True, "env": "test", "printerMode": "cloud"}
    assert os.path.isdir(client.application.config["LOG_DIR"])
