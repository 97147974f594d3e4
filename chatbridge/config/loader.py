from __future__ import annotations

from dataclasses import dataclass
import logging
import os
import sys
from typing import Any

from dotenv import load_dotenv
import yaml

from .validator import ConfigError, validate_config, validate_settings


DEFAULT_ENV_FILE = ".env"
ENV_FILE_VAR = "ENV_FILE"
DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "CONFIG_PATH"

DEFAULT_POLL_INTERVAL = 5.0


@dataclass(frozen=True)
class Settings:
    openai_api_key: str
    model_name: str
    google_credentials: str
    space_name: str
    provider: str = "openai"
    base_url: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float | None = None
    event_filter: str = "text"
    log_level: str | None = None


def _resolve(explicit: str | None, env_var: str, default: str) -> tuple[str, bool]:
    """
    Return (path, declared). A path is declared when passed explicitly or set
    through its environment variable; the default path is only tried.
    """
    if explicit:
        return explicit, True
    env_path = os.environ.get(env_var)
    if env_path:
        return env_path, True
    return default, False


def load_env_file(path: str | None = None) -> str | None:
    """
    Populate os.environ from a dotenv file. Existing variables win.

    Returns the path that was loaded, or None when the default file is absent.
    """
    env_path, declared = _resolve(path, ENV_FILE_VAR, DEFAULT_ENV_FILE)
    if not declared and not os.path.exists(env_path):
        logging.debug("No %s file found, using process environment only", env_path)
        return None
    try:
        with open(env_path, encoding="utf-8") as f:
            load_dotenv(stream=f, override=False)
    except OSError as e:
        raise ConfigError(f"Error loading {env_path} file: {e}") from e
    return env_path


def load_yaml_config(path: str | None = None) -> dict[str, Any]:
    cfg_path, declared = _resolve(path, CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)
    if not declared and not os.path.exists(cfg_path):
        return {}
    try:
        with open(cfg_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Config file not readable: {cfg_path} ({e})") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parsing error in {cfg_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping, got {type(data).__name__}")

    validate_config(data, cfg_path)
    return data


def load_settings(env_file: str | None = None, config_path: str | None = None) -> Settings:
    """
    Build Settings from the dotenv file, the process environment and config.yaml.

    Raises ConfigError when a declared file cannot be read or config.yaml is invalid.
    """
    load_env_file(env_file)
    cfg = load_yaml_config(config_path)

    env = {
        "OPENAI_API_KEY": os.environ.get("OPENAI_API_KEY", ""),
        "OPENAI_MODEL_NAME": os.environ.get("OPENAI_MODEL_NAME", ""),
        "GOOGLE_APPLICATION_CREDENTIALS": os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", ""),
        "GOOGLE_CHAT_SPACE_NAME": os.environ.get("GOOGLE_CHAT_SPACE_NAME", ""),
    }
    validate_settings(env)

    return Settings(
        openai_api_key=env["OPENAI_API_KEY"],
        model_name=env["OPENAI_MODEL_NAME"],
        google_credentials=env["GOOGLE_APPLICATION_CREDENTIALS"],
        space_name=env["GOOGLE_CHAT_SPACE_NAME"],
        provider=cfg.get("provider", "openai"),
        base_url=cfg.get("base_url"),
        poll_interval=float(cfg.get("poll_interval_seconds", DEFAULT_POLL_INTERVAL)),
        request_timeout=cfg.get("request_timeout_seconds"),
        event_filter=cfg.get("event_filter", "text"),
        log_level=cfg.get("log_level"),
    )


def get_config(env_file: str | None = None, config_path: str | None = None) -> Settings:
    """
    Public helper for loading configuration.

    - Respects ENV_FILE and CONFIG_PATH if set.
    - Exits with error code 1 if anything cannot be loaded.
    """
    try:
        return load_settings(env_file, config_path)
    except ConfigError as e:
        logging.critical("%s", e)
        sys.exit(1)
