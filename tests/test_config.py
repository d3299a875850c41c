import json

import pytest

from homeserver_admin.config import (
    ConfigurationError, ProxySettings, load_config, load_settings, save_config,
)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "homeserver_admin.json"
    monkeypatch.setenv("HOMESERVER_ADMIN_CONFIG", str(path))
    return path


def test_defaults_without_file(config_file):
    config = load_config()
    assert config["admin_base_url"] == ""
    assert config["listen_port"] == 8089


def test_file_values_merged_onto_defaults(config_file):
    config_file.write_text(json.dumps({"admin_base_url": "http://hs.example:6288"}))
    config = load_config()
    assert config["admin_base_url"] == "http://hs.example:6288"
    assert config["listen_host"] == "127.0.0.1"


def test_broken_file_falls_back_to_defaults(config_file):
    config_file.write_text("{not json")
    assert load_config()["admin_token"] == ""


def test_save_and_reload(config_file):
    assert save_config({"admin_base_url": "http://hs", "admin_token": "t"})
    settings = load_settings(environ={})
    assert settings.admin_base_url == "http://hs"
    assert settings.admin_token == "t"


def test_environment_overrides_file(config_file):
    config_file.write_text(json.dumps({"admin_base_url": "http://file", "admin_token": "file-token"}))
    settings = load_settings(environ={
        "ADMIN_BASE_URL": "http://env:6288",
        "WEBDAV_CORS_ORIGINS": "http://localhost:3000, http://127.0.0.1:3000",
        "WEBDAV_TIMEOUT": "2.5",
    })
    assert settings.admin_base_url == "http://env:6288"
    assert settings.admin_token == "file-token"
    assert settings.cors_origins == ["http://localhost:3000", "http://127.0.0.1:3000"]
    assert settings.timeout == 2.5
    assert settings.dav_url == "http://env:6288/dav"


def test_require_reports_missing():
    with pytest.raises(ConfigurationError) as exc:
        ProxySettings(admin_token="t").require()
    assert exc.value.missing == ["ADMIN_BASE_URL"]

    with pytest.raises(ConfigurationError) as exc:
        ProxySettings().require()
    assert exc.value.missing == ["ADMIN_BASE_URL", "ADMIN_TOKEN"]


def test_diagnostics_never_leak_token():
    settings = ProxySettings(admin_base_url="http://hs", admin_token="very-secret")
    assert settings.diagnostics() == {"adminBaseUrl": "http://hs", "hasToken": True}
    assert "very-secret" not in json.dumps(settings.diagnostics())
    assert ProxySettings().diagnostics() == {"adminBaseUrl": "missing", "hasToken": False}


def test_invalid_timeout_is_ignored(config_file):
    config_file.write_text(json.dumps({"admin_base_url": "http://hs", "timeout": 5}))
    settings = load_settings(environ={"WEBDAV_TIMEOUT": "soon"})
    assert settings.timeout == 5
    assert settings.admin_base_url == "http://hs"

    config_file.write_text(json.dumps({"timeout": "soon"}))
    assert load_settings(environ={}).timeout is None
