"""
Validator for the optional config.yaml tuning file and the environment settings.

Structural problems in config.yaml are errors. Missing secrets in the
environment are only warnings: they surface later as auth or request failures.
"""

from __future__ import annotations

import logging
from typing import Any


logger = logging.getLogger(__name__)

VALID_PROVIDERS = ("openai", "ollama")
VALID_EVENT_FILTERS = ("text",)
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
KNOWN_KEYS = {
    "provider",
    "base_url",
    "poll_interval_seconds",
    "request_timeout_seconds",
    "event_filter",
    "log_level",
}
REQUIRED_ENV = (
    "OPENAI_API_KEY",
    "OPENAI_MODEL_NAME",
    "GOOGLE_APPLICATION_CREDENTIALS",
    "GOOGLE_CHAT_SPACE_NAME",
)


class ConfigError(Exception):
    """Raised when configuration cannot be loaded."""


class ConfigValidationError(ConfigError):
    """Raised when config validation fails."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(cfg: dict[str, Any], config_path: str = "config.yaml") -> None:
    """
    Validate the structure and content of config.yaml.

    Logs every problem found before raising, so a single run reports them all.

    Raises:
        ConfigValidationError: If validation fails
    """
    errors = []
    warnings = []

    if not isinstance(cfg, dict):
        errors.append(f"Config root must be a mapping, got {type(cfg).__name__}")
        cfg = {}

    for key in cfg:
        if key not in KNOWN_KEYS:
            warnings.append(
                f"Unknown key '{key}'. Valid keys: {', '.join(sorted(KNOWN_KEYS))}"
            )

    # ── provider / base_url ────────────────────────────────────────────────
    if "provider" in cfg and cfg["provider"] not in VALID_PROVIDERS:
        errors.append(
            f"'provider' must be one of {', '.join(VALID_PROVIDERS)}, got {cfg['provider']!r}"
        )

    if "base_url" in cfg and cfg["base_url"] is not None:
        if not isinstance(cfg["base_url"], str):
            errors.append(f"'base_url' must be a string, got {type(cfg['base_url']).__name__}")
    elif cfg.get("provider") == "ollama":
        errors.append("'base_url' is required when provider is 'ollama'")

    # ── timing ─────────────────────────────────────────────────────────────
    if "poll_interval_seconds" in cfg:
        interval = cfg["poll_interval_seconds"]
        if not _is_number(interval) or interval <= 0:
            errors.append(f"'poll_interval_seconds' must be a positive number, got {interval!r}")

    if cfg.get("request_timeout_seconds") is not None:
        timeout = cfg["request_timeout_seconds"]
        if not _is_number(timeout) or timeout <= 0:
            errors.append(
                f"'request_timeout_seconds' must be a positive number or null, got {timeout!r}"
            )

    # ── event filter / logging ─────────────────────────────────────────────
    if "event_filter" in cfg and cfg["event_filter"] not in VALID_EVENT_FILTERS:
        errors.append(
            f"'event_filter' must be one of {', '.join(VALID_EVENT_FILTERS)}, got {cfg['event_filter']!r}"
        )

    if "log_level" in cfg:
        level = cfg["log_level"]
        if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
            errors.append(
                f"'log_level' must be one of {', '.join(VALID_LOG_LEVELS)}, got {level!r}"
            )

    for warning in warnings:
        logger.warning("Config warning: %s", warning)

    if errors:
        logger.error("=" * 70)
        logger.error("CONFIG VALIDATION FAILED (%s)", config_path)
        logger.error("=" * 70)
        for i, error in enumerate(errors, 1):
            logger.error("[%d] %s", i, error)
        logger.error("=" * 70)
        raise ConfigValidationError(f"Config validation failed with {len(errors)} error(s)")


def validate_settings(env: dict[str, str]) -> list[str]:
    """
    Warn about required environment values that are unset.

    Returns the names of the missing variables.
    """
    missing = [name for name in REQUIRED_ENV if not env.get(name)]
    for name in missing:
        logger.warning("Environment variable %s is not set; requests that need it will fail", name)
    return missing
