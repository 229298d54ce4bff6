"""Runtime configuration for notion_sync.

Reads Notion connection and sync settings from CLI args, environment
variables, .env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    NOTION_TOKEN: Notion integration token (required)
    NOTION_DATABASE_ID: Database to sync (required)
    NOTION_SYNC_OUTPUT_DIR: Directory for Markdown files (default: ./docs)
    NOTION_SYNC_STATE_FILE: Sync ledger path (default: ./.notion-sync-state.json)
    NOTION_SYNC_CONFLICT_STRATEGY: latest-wins | remote-wins | local-wins
    NOTION_SYNC_STATUS_PROPERTY: Property holding the publish status (default: Status)
    NOTION_SYNC_PUBLISHED_STATUS: Status value that is eligible for sync (default: Published)
    NOTION_SYNC_MIN_REQUEST_INTERVAL: Seconds between API calls (default: 0.334)
    NOTION_SYNC_MAX_RETRIES: Retries on HTTP 429 (default: 3)
"""

import logging
import os
from dataclasses import dataclass

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFLICT_STRATEGIES = ("latest-wins", "remote-wins", "local-wins")


@dataclass
class Config:
    notion_token: str
    database_id: str
    output_dir: str = "./docs"
    state_file: str = "./.notion-sync-state.json"
    conflict_strategy: str = "latest-wins"
    status_property: str = "Status"
    published_status: str = "Published"
    min_request_interval: float = 0.334
    max_retries: int = 3
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ConfigError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ConfigError: If credentials are empty or a setting is out of range.
    """
    config.notion_token = config.notion_token.strip()
    config.database_id = config.database_id.strip().replace("-", "")

    if not config.notion_token:
        raise ConfigError(
            "Notion token cannot be empty. Set NOTION_TOKEN environment variable."
        )

    if not config.database_id:
        raise ConfigError(
            "Notion database id cannot be empty. Set NOTION_DATABASE_ID environment variable."
        )

    if config.conflict_strategy not in CONFLICT_STRATEGIES:
        raise ConfigError(
            f"Invalid conflict strategy '{config.conflict_strategy}': "
            f"must be one of {', '.join(CONFLICT_STRATEGIES)}"
        )

    if not config.output_dir.strip():
        raise ConfigError("Output directory cannot be empty")

    if config.min_request_interval < 0:
        raise ConfigError(
            f"Invalid min_request_interval {config.min_request_interval}: must be >= 0"
        )

    if config.max_retries < 0:
        raise ConfigError(
            f"Invalid max_retries {config.max_retries}: must be >= 0"
        )


def _number_from_env(
    key: str, cast, low: float, high: float, fallback
):
    """Parse a bounded number from *key*, or return *fallback* when unset."""
    raw = os.getenv(key)
    if raw is None:
        return fallback
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ConfigError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def load_config(
    token: str | None = None,
    database_id: str | None = None,
    output_dir: str | None = None,
    state_file: str | None = None,
    conflict_strategy: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        token: Override integration token.
        database_id: Override database id.
        output_dir: Override output directory (``--output``).
        state_file: Override ledger path.
        conflict_strategy: Override conflict strategy (``--strategy``).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flattened values from the YAML ``notion`` and
            ``sync`` sections, used when CLI arg and env var are unset.

    Returns:
        Validated Config instance.

    Raises:
        ConfigError: If token or database id is missing after checking
            all sources, or any value is invalid.
    """
    fb = yaml_fallbacks or {}

    final_token = token or os.getenv("NOTION_TOKEN") or fb.get("token")
    if not final_token:
        raise ConfigError(
            "Notion token not found. Set NOTION_TOKEN environment variable "
            "or add 'token' to the notion section of config.yml."
        )

    final_database = (
        database_id
        or os.getenv("NOTION_DATABASE_ID")
        or fb.get("database_id")
    )
    if not final_database:
        raise ConfigError(
            "Notion database id not found. Set NOTION_DATABASE_ID environment variable "
            "or add 'database_id' to the notion section of config.yml."
        )

    final_output = (
        output_dir
        or os.getenv("NOTION_SYNC_OUTPUT_DIR")
        or fb.get("output_dir")
        or "./docs"
    )
    final_state = (
        state_file
        or os.getenv("NOTION_SYNC_STATE_FILE")
        or fb.get("state_file")
        or "./.notion-sync-state.json"
    )
    final_strategy = (
        conflict_strategy
        or os.getenv("NOTION_SYNC_CONFLICT_STRATEGY")
        or fb.get("conflict_strategy")
        or "latest-wins"
    )
    final_status_property = (
        os.getenv("NOTION_SYNC_STATUS_PROPERTY")
        or fb.get("status_property")
        or "Status"
    )
    final_published = (
        os.getenv("NOTION_SYNC_PUBLISHED_STATUS")
        or fb.get("published_status")
        or "Published"
    )

    # --- Numeric fields: env > YAML > default ---

    final_interval = _number_from_env(
        "NOTION_SYNC_MIN_REQUEST_INTERVAL",
        float,
        0,
        10,
        float(fb.get("min_request_interval", 0.334)),
    )
    final_retries = _number_from_env(
        "NOTION_SYNC_MAX_RETRIES",
        int,
        0,
        10,
        int(fb.get("max_retries", 3)),
    )

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("NOTION_SYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        notion_token=final_token,
        database_id=final_database,
        output_dir=final_output,
        state_file=final_state,
        conflict_strategy=final_strategy,
        status_property=final_status_property,
        published_status=final_published,
        min_request_interval=final_interval,
        max_retries=final_retries,
        debug=final_debug,
    )

    validate_config(config)

    return config
