"""Unit tests for configuration management."""

import pytest

from recipe_snap.utils.config import Config

CONFIG_VARS = [
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "IMAGE_DETECTION_MODEL",
    "TEMPERATURE",
    "MAX_OUTPUT_TOKENS",
    "MAX_RECIPE_IDEAS",
    "IMAGE_FETCH_TIMEOUT",
    "DISH_IMAGE_PLACEHOLDER",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every configuration variable from the environment."""
    for var in CONFIG_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestConfigInitialization:
    """Test Config class initialization and environment variable loading."""

    def test_default_values(self, clean_env):
        config = Config()

        assert config.GEMINI_API_KEY == ""
        assert config.GEMINI_MODEL == "gemini-2.5-flash"
        assert config.IMAGE_DETECTION_MODEL == "gemini-2.5-flash-lite"
        assert config.TEMPERATURE == 0.2
        assert config.MAX_OUTPUT_TOKENS == 2048
        assert config.MAX_RECIPE_IDEAS == 5
        assert config.IMAGE_FETCH_TIMEOUT == 10
        assert config.DISH_IMAGE_PLACEHOLDER == "https://placehold.co/600x400.png"

    def test_loads_from_environment(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "test_gemini_key")
        clean_env.setenv("GEMINI_MODEL", "custom-model")
        clean_env.setenv("IMAGE_DETECTION_MODEL", "vision-model")
        clean_env.setenv("TEMPERATURE", "0.7")
        clean_env.setenv("MAX_OUTPUT_TOKENS", "4096")
        clean_env.setenv("MAX_RECIPE_IDEAS", "3")
        clean_env.setenv("IMAGE_FETCH_TIMEOUT", "30")

        config = Config()

        assert config.GEMINI_API_KEY == "test_gemini_key"
        assert config.GEMINI_MODEL == "custom-model"
        assert config.IMAGE_DETECTION_MODEL == "vision-model"
        assert config.TEMPERATURE == 0.7
        assert config.MAX_OUTPUT_TOKENS == 4096
        assert config.MAX_RECIPE_IDEAS == 3
        assert config.IMAGE_FETCH_TIMEOUT == 30

    def test_invalid_number_raises(self, clean_env):
        clean_env.setenv("MAX_RECIPE_IDEAS", "many")

        with pytest.raises(ValueError):
            Config()


class TestConfigValidation:
    """Test Config.validate()."""

    def test_valid_config_passes(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "test_key")

        Config().validate()

    def test_missing_api_key(self, clean_env):
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            Config().validate()

    @pytest.mark.parametrize("value", ["-0.1", "1.5"])
    def test_temperature_out_of_range(self, clean_env, value):
        clean_env.setenv("GEMINI_API_KEY", "test_key")
        clean_env.setenv("TEMPERATURE", value)

        with pytest.raises(ValueError, match="TEMPERATURE"):
            Config().validate()

    def test_temperature_bounds_are_inclusive(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "test_key")
        for value in ("0.0", "1.0"):
            clean_env.setenv("TEMPERATURE", value)
            Config().validate()

    def test_max_output_tokens_too_small(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "test_key")
        clean_env.setenv("MAX_OUTPUT_TOKENS", "100")

        with pytest.raises(ValueError, match="MAX_OUTPUT_TOKENS"):
            Config().validate()

    def test_max_recipe_ideas_zero(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "test_key")
        clean_env.setenv("MAX_RECIPE_IDEAS", "0")

        with pytest.raises(ValueError, match="MAX_RECIPE_IDEAS"):
            Config().validate()

    def test_fetch_timeout_zero(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "test_key")
        clean_env.setenv("IMAGE_FETCH_TIMEOUT", "0")

        with pytest.raises(ValueError, match="IMAGE_FETCH_TIMEOUT"):
            Config().validate()

    def test_module_import_does_not_validate(self, clean_env):
        """The package imports without an API key; only gateway construction validates."""
        from recipe_snap.utils import config as config_module

        assert isinstance(config_module.config, Config)
