"""Tests for configuration parsing."""

import pytest

from nft_avatar.config import (
    DEFAULT_CONFIG,
    CompositeConfig,
    LayerFailurePolicy,
    config_from_env,
    parse_policy,
    parse_size,
)


class TestCompositeConfig:
    """Tests for the CompositeConfig dataclass."""

    def test_default_config_values(self) -> None:
        assert DEFAULT_CONFIG.canvas_size == (1000, 1000)
        assert DEFAULT_CONFIG.alpha_threshold == 64
        assert DEFAULT_CONFIG.loop == 0
        assert DEFAULT_CONFIG.fetch_attempts == 3
        assert DEFAULT_CONFIG.layer_failure_policy is LayerFailurePolicy.ABORT

    def test_config_is_frozen(self) -> None:
        with pytest.raises(AttributeError):
            DEFAULT_CONFIG.alpha_threshold = 10  # type: ignore[misc]

    def test_invalid_threshold(self) -> None:
        with pytest.raises(ValueError):
            CompositeConfig(alpha_threshold=300)

    def test_invalid_attempts(self) -> None:
        with pytest.raises(ValueError):
            CompositeConfig(fetch_attempts=0)


class TestParseSize:
    """Tests for parse_size function."""

    def test_valid_size(self):
        assert parse_size("500x400") == (500, 400)

    def test_uppercase(self):
        assert parse_size("500X400") == (500, 400)

    def test_default_size(self):
        assert parse_size("") == (1000, 1000)
        assert parse_size(None) == (1000, 1000)

    @pytest.mark.parametrize("text", ["500-400", "0x10", "-5x10", "5000x10"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_size(text)


class TestConfigFromEnv:
    """Tests for config_from_env."""

    def test_empty_environment_keeps_defaults(self):
        assert config_from_env({}) == DEFAULT_CONFIG

    def test_overrides(self):
        config = config_from_env({
            "CANVAS_SIZE": "500x500",
            "ALPHA_THRESHOLD": "25",
            "LAYER_FAILURE_POLICY": "Skip",
            "FETCH_ATTEMPTS": "5",
            "GIF_LOOP": "2",
        })
        assert config.canvas_size == (500, 500)
        assert config.alpha_threshold == 25
        assert config.layer_failure_policy is LayerFailurePolicy.SKIP
        assert config.fetch_attempts == 5
        assert config.loop == 2

    def test_bad_number(self):
        with pytest.raises(ValueError):
            config_from_env({"ALPHA_THRESHOLD": "lots"})

    def test_bad_policy(self):
        with pytest.raises(ValueError):
            parse_policy("retry-forever")
