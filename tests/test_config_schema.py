"""Tests for the Pydantic configuration schema."""

import pytest
from pydantic import ValidationError

from notion_sync.config_schema import (
    LoggingConfig,
    NotionConfig,
    UnifiedConfig,
    build_config,
    to_fallbacks,
)


class TestDefaults:
    def test_zero_config_is_valid(self):
        unified = build_config({})
        assert unified == UnifiedConfig()
        assert unified.notion.min_request_interval == pytest.approx(0.334)
        assert unified.notion.max_retries == 3
        assert unified.sync.output_dir is None
        assert unified.logging.level == "INFO"
        assert unified.logging.format == "text"

    def test_models_are_frozen(self):
        with pytest.raises(ValidationError):
            UnifiedConfig().logging.level = "DEBUG"


class TestValidation:
    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValidationError):
            build_config({"sync": {"conflict_strategy": "coin-flip"}})

    @pytest.mark.parametrize("interval", [-0.1, 10.5])
    def test_interval_bounds(self, interval):
        with pytest.raises(ValidationError):
            NotionConfig(min_request_interval=interval)

    def test_retry_bounds(self):
        with pytest.raises(ValidationError):
            NotionConfig(max_retries=11)

    def test_log_format(self):
        assert LoggingConfig(format="json").format == "json"
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")


class TestToFallbacks:
    def test_flattens_notion_and_sync_sections(self):
        unified = build_config(
            {
                "notion": {"token": "t", "database_id": "db"},
                "sync": {"output_dir": "site/docs", "conflict_strategy": "local-wins"},
                "logging": {"level": "DEBUG"},
            }
        )

        fallbacks = to_fallbacks(unified)

        assert fallbacks == {
            "token": "t",
            "database_id": "db",
            "min_request_interval": pytest.approx(0.334),
            "max_retries": 3,
            "debug": False,
            "output_dir": "site/docs",
            "conflict_strategy": "local-wins",
        }

    def test_unset_values_omitted(self):
        fallbacks = to_fallbacks(UnifiedConfig())
        assert "token" not in fallbacks
        assert "state_file" not in fallbacks
