"""Unit tests for application settings."""

import pytest

from klarolink.config.settings import DEFAULT_JWT_SECRET, Settings, get_settings

PRODUCTION = {
    "app_env": "production",
    "jwt_secret": "a-production-secret-that-is-long-and-random",
    "debug": False,
    "cors_allowed_origins": ["https://app.klarolink.com"],
}


class TestSettings:
    """Test settings loading."""

    def test_loaded_from_environment(self, settings):
        assert settings.bcrypt_rounds == 4
        assert settings.jwt_secret.get_secret_value() != DEFAULT_JWT_SECRET
        assert settings.is_development is True

    def test_defaults(self, settings):
        assert settings.jwt_expiry_days == 7
        assert settings.ai_insights_cache_ttl_seconds == 600
        assert settings.default_background_color == "#6366f1"
        assert settings.database_fallback_to_mock is False

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()

    def test_use_supabase_needs_url_and_key(self, monkeypatch):
        assert Settings().use_supabase is False

        monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")

        assert Settings().use_supabase is False

        monkeypatch.setenv("SUPABASE_KEY", "service-key")

        assert Settings().use_supabase is True


class TestProductionValidation:
    """Test production safety checks."""

    def test_valid_production_settings(self):
        settings = Settings(**PRODUCTION)

        assert settings.is_production is True

    @pytest.mark.parametrize(
        "override,message",
        [
            ({"jwt_secret": DEFAULT_JWT_SECRET}, "jwt_secret"),
            ({"debug": True}, "debug"),
            ({"cors_allowed_origins": ["*"]}, "cors_allowed_origins"),
            ({"database_fallback_to_mock": True}, "database_fallback_to_mock"),
        ],
    )
    def test_insecure_production_settings_rejected(self, override, message):
        with pytest.raises(ValueError, match=message):
            Settings(**{**PRODUCTION, **override})

    def test_development_allows_defaults(self):
        settings = Settings(app_env="development", jwt_secret=DEFAULT_JWT_SECRET, debug=True)

        assert settings.is_production is False
