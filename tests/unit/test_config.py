"""Tests for settings."""

from ponyknows.core.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.session_expire_minutes == 180
    assert settings.session_cookie_name == "session"
    assert settings.access_denied_redirect == "/404"
    assert settings.minio_default_bucket == "ponyknows"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MINIO_ENDPOINT", "files.internal")
    monkeypatch.setenv("MINIO_PORT", "9443")
    monkeypatch.setenv("REGISTRATION_ENABLED", "false")

    settings = Settings(_env_file=None)
    assert settings.minio_host == "files.internal:9443"
    assert settings.registration_enabled is False


def test_nextcloud_dav_root():
    settings = Settings(
        _env_file=None,
        nextcloud_url="https://cloud.example.com/",
        nextcloud_username="alice",
    )
    assert settings.nextcloud_dav_root == "https://cloud.example.com/remote.php/dav/files/alice"


def test_cors_origins_list():
    settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test,")
    assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
