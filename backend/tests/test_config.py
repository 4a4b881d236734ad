from pydantic import ValidationError
import pytest

from booking_engine.core.config import Settings


@pytest.mark.parametrize(
    ("site_mode", "environment"),
    [("live", "production"), ("Beta", "production"), ("local", "development"), ("preview", "development")],
)
def test_environment_follows_site_mode(monkeypatch, site_mode, environment):
    monkeypatch.delenv("ENVIRONMENT", raising=False)

    assert Settings(_env_file=None, site_mode=site_mode).environment == environment


def test_explicit_environment_wins(monkeypatch):
    monkeypatch.delenv("ENVIRONMENT", raising=False)

    assert Settings(_env_file=None, site_mode="live", environment="development").environment == "development"


def test_heroku_style_database_url_is_normalized():
    settings = Settings(_env_file=None, database_url="postgres://u:p@db/bookings")

    assert settings.database_url == "postgresql://u:p@db/bookings"


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_level="LOUD")
    with pytest.raises(ValidationError):
        Settings(_env_file=None, reminder_window_minutes=0)
