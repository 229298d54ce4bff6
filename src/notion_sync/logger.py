import json
import logging
import os
import sys

_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every HTTP request at INFO/DEBUG
_NOISY_LOGGERS = ("urllib3", "requests", "charset_normalizer")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg (and exc if any)."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(log_format: str, pattern: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(datefmt=_DATEFMT)
    return logging.Formatter(pattern, datefmt=_DATEFMT)


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    log_format: str = "text",
    default_level: str = "INFO",
) -> None:
    """
    Configure root logging for the sync CLI.

    Log lines always go to stderr so that ``--json`` output on stdout stays
    machine readable.  A log file, when given, receives the same records.

    Args:
        debug: If True, overrides LOG_LEVEL to DEBUG.
        log_file: Extra log file path (overrides LOG_FILE env var).
        log_format: "text" (default) or "json" for structured output.
        default_level: Level used when LOG_LEVEL is unset (the YAML
            ``logging.level`` value).

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
        LOG_FILE: Log file path used when *log_file* is not given.
    """
    if debug:
        log_level = logging.DEBUG
    else:
        env_level = os.getenv("LOG_LEVEL", default_level).upper()
        log_level = getattr(logging, env_level, logging.INFO)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(
        _make_formatter(log_format, "[%(asctime)s] [%(levelname)s] %(message)s")
    )
    handlers: list[logging.Handler] = [stderr_handler]

    final_log_file = log_file or os.getenv("LOG_FILE")
    if final_log_file:
        file_handler = logging.FileHandler(final_log_file, mode="a")
        file_handler.setFormatter(
            _make_formatter(
                log_format,
                "[%(asctime)s] [%(levelname)s] %(name)s %(message)s",
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers)

    if log_level != logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
