"""Unified configuration schema for notion_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the Notion connection, sync behaviour, and logging.

Usage:
    from notion_sync.config_schema import build_config, to_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class NotionConfig(BaseModel):
    """Notion connection settings.

    All fields are optional so env vars and CLI args can supply them at
    runtime instead.
    """

    token: str | None = Field(
        default=None, description="Notion integration token"
    )
    database_id: str | None = Field(
        default=None, description="Database to sync"
    )
    min_request_interval: float = Field(
        default=0.334,
        ge=0.0,
        le=10.0,
        description="Minimum seconds between two API calls",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries on HTTP 429 before giving up",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class SyncSectionConfig(BaseModel):
    """Sync behaviour: where files go and how conflicts are settled."""

    output_dir: str | None = Field(
        default=None, description="Directory for Markdown files"
    )
    state_file: str | None = Field(
        default=None, description="Path of the JSON sync ledger"
    )
    conflict_strategy: (
        Literal["latest-wins", "remote-wins", "local-wins"] | None
    ) = Field(default=None, description="Conflict resolution strategy")
    status_property: str | None = Field(
        default=None, description="Property holding the publish status"
    )
    published_status: str | None = Field(
        default=None, description="Status value eligible for sync"
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log line format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` (zero-config) is
    always valid.
    """

    notion: NotionConfig = Field(default_factory=NotionConfig)
    sync: SyncSectionConfig = Field(default_factory=SyncSectionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def to_fallbacks(unified: UnifiedConfig) -> dict:
    """Flatten the ``notion`` and ``sync`` sections into the
    ``yaml_fallbacks`` dict accepted by ``load_config()``.

    Unset (``None``) values are omitted so built-in defaults still apply.
    """
    merged = {
        **unified.notion.model_dump(),
        **unified.sync.model_dump(),
    }
    return {k: v for k, v in merged.items() if v is not None}
