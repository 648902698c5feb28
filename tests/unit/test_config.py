"""Tests for configuration validation"""
import pytest

from trajectory import config
from trajectory.exceptions import ConfigurationError


class TestConfigValidation:
    """Test validate_config against the module-level settings"""

    def test_defaults_are_valid(self):
        config.validate_config()

    def test_missing_database_url(self, monkeypatch):
        monkeypatch.setattr(config, "DATABASE_URL", "")

        with pytest.raises(ConfigurationError) as exc_info:
            config.validate_config()

        assert exc_info.value.context["config_key"] == "DATABASE_URL"

    @pytest.mark.parametrize("key", ["FREE_TIER_DAILY_LIMIT", "INSIGHTS_WINDOW_DAYS"])
    def test_non_positive_limits_rejected(self, monkeypatch, key):
        monkeypatch.setattr(config, key, 0)

        with pytest.raises(ConfigurationError) as exc_info:
            config.validate_config()

        assert key in exc_info.value.message

    def test_missing_groq_key_is_allowed(self, monkeypatch):
        monkeypatch.setattr(config, "GROQ_API_KEY", "")

        config.validate_config()

    def test_defaults(self):
        assert config.FREE_TIER_DAILY_LIMIT == 10
        assert config.DAILY_LOGIN_XP == 5
        assert config.COACH_BASE_URL == "https://api.groq.com/openai/v1"
