import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from entitykit.core.config import Settings, get_settings


def test_settings_defaults():
    """Test that settings load with correct defaults."""
    settings = Settings()

    assert settings.app_name == "entitykit"
    assert settings.environment == "development"
    assert settings.debug is False
    assert settings.persistence_debounce_seconds == 0.25
    assert settings.notification_ttl_seconds == 3.0
    assert settings.csv_encoding == "utf-8"
    assert settings.import_min_columns is None
    assert settings.is_development is True
    assert settings.is_production is False
    assert settings.is_testing is False


def test_settings_env_override():
    """Test that environment variables override defaults."""
    with patch.dict(os.environ, {
        "ENTITYKIT_APP_NAME": "fleet",
        "ENTITYKIT_ENVIRONMENT": "production",
        "ENTITYKIT_NOTIFICATION_TTL_SECONDS": "5",
        "ENTITYKIT_IMPORT_MIN_COLUMNS": "3",
    }):
        settings = Settings()

        assert settings.app_name == "fleet"
        assert settings.is_production is True
        assert settings.notification_ttl_seconds == 5.0
        assert settings.import_min_columns == 3


def test_storage_key_uses_app_name():
    """Snapshot keys follow <app>_<kind>."""
    settings = Settings(app_name="fleet")

    assert settings.storage_key("vehicles") == "fleet_vehicles"


def test_negative_durations_rejected():
    """Test that negative durations fail validation."""
    with pytest.raises(ValidationError):
        Settings(persistence_debounce_seconds=-1)

    with pytest.raises(ValidationError):
        Settings(notification_ttl_seconds=-0.5)


def test_min_columns_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(import_min_columns=0)


def test_invalid_environment_rejected():
    with pytest.raises(ValidationError):
        Settings(environment="staging")


def test_get_settings_is_cached():
    """Test that get_settings returns the same instance."""
    assert get_settings() is get_settings()


@pytest.mark.parametrize("name", ["My App", "", "../up", "_hidden"])
def test_app_name_must_be_a_valid_key_prefix(name):
    """App names that cannot prefix a storage key are rejected."""
    with pytest.raises(ValidationError):
        Settings(app_name=name)


def test_app_name_accepts_key_characters():
    assert Settings(app_name="fleet-ops.v2").storage_key("vehicles") == "fleet-ops.v2_vehicles"
