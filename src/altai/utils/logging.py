"""Structured logging setup for altai."""

import structlog
from pathlib import Path
from typing import Any
import os


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def resolve_log_dir(log_dir: Path | None = None) -> Path:
    """
    Pick the log directory.

    Precedence: explicit argument, then ALTAI_LOG_DIR, then
    ~/.cache/altai/logs.
    """
    if log_dir is not None:
        return Path(log_dir)
    env_dir = os.environ.get("ALTAI_LOG_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".cache" / "altai" / "logs"


def resolve_log_level() -> str:
    """ALTAI_LOG_LEVEL, upper-cased; anything unrecognized means INFO."""
    level = os.environ.get("ALTAI_LOG_LEVEL", "INFO").strip().upper()
    return level if level in LOG_LEVELS else "INFO"


def configure_logging(log_dir: Path | None = None) -> None:
    """
    Configure structlog for JSON logging to altai.log.

    The file lives in ALTAI_LOG_DIR when set, otherwise ~/.cache/altai/logs.
    Set ALTAI_LOG_LEVEL=DEBUG to see request payloads, raw model replies
    and per-field reconcile decisions.

    Example:
        ALTAI_LOG_LEVEL=DEBUG altai serve
        tail -f ~/.cache/altai/logs/altai.log | jq .

    Args:
        log_dir: Override the log directory
    """
    directory = resolve_log_dir(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / "altai.log"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolve_log_level()),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=open(log_file, "a")),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger bound to `name` (usually the module's __name__)."""
    return structlog.get_logger(name)
