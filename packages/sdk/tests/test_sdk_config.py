"""Tests for client configuration loading."""

import pytest
import yaml

from fort_sdk.config import FortClientConfig, load_config


def test_load_config_from_yaml(tmp_path):
    config_data = {
        "server": {"url": "https://fort.example.com", "verify_tls": False},
        "app": {"app_key": "abc123", "app_secret_env": "SHOP_SECRET"},
        "logging": {"level": "debug", "format": "text"},
    }
    path = tmp_path / "fort-client.yaml"
    path.write_text(yaml.dump(config_data))

    cfg = load_config(path)
    assert cfg.server.url == "https://fort.example.com"
    assert cfg.server.verify_tls is False
    assert cfg.app.app_key == "abc123"
    assert cfg.logging.format == "text"


def test_defaults():
    cfg = FortClientConfig(app={"app_key": "abc123"})
    assert cfg.server.url == "http://localhost:8080"
    assert cfg.server.stream_read_timeout_seconds == 60
    assert cfg.app.app_secret_env == "FORT_APP_SECRET"


def test_secret_comes_from_environment(monkeypatch):
    monkeypatch.setenv("SHOP_SECRET", "s3cret")
    cfg = FortClientConfig(app={"app_key": "abc123", "app_secret_env": "SHOP_SECRET"})
    assert cfg.auth_headers() == {"X-App-Key": "abc123", "X-App-Secret": "s3cret"}


def test_missing_secret(monkeypatch):
    monkeypatch.delenv("SHOP_SECRET", raising=False)
    cfg = FortClientConfig(app={"app_key": "abc123", "app_secret_env": "SHOP_SECRET"})
    with pytest.raises(ValueError):
        cfg.auth_headers()


def test_load_config_file_not_found():
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/path.yaml")
