"""
Application configuration: defaults merged with an optional JSON file.
"""

import json
import os
from copy import deepcopy
from typing import Any, Dict, Optional

from .api_client import DEFAULT_API_BASE
from .errors import ConfigurationError

API_BASE_ENV = "LASERIO_API_BASE"
ENV_MODE_VAR = "LASERIO_ADMIN_ENV"

NESTED_SECTIONS = ("api", "ui", "session")

DEFAULT_CONFIG: Dict[str, Any] = {
    "log_dir": "~/.laserio_admin/logs",
    "log_level": "INFO",
    "max_log_size": 5_242_880,  # 5MB
    "backup_count": 3,
    "api": {
        "base_url": DEFAULT_API_BASE,
        "timeout": 10,
        "page_limit": 50,
    },
    "ui": {
        "font_size": 10,
        "window_size": [1200, 760],
        "locale": "ru",
    },
    "session": {
        "file": "~/.laserio_admin/session.json",
    },
}


def load_configuration(
    config_path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """
    Load application configuration.

    Args:
        config_path: Optional path to a JSON configuration file
        environ: Environment mapping, ``os.environ`` by default

    Returns:
        Dict containing configuration

    Raises:
        ConfigurationError: If the file cannot be read or has the wrong shape
    """
    environ = os.environ if environ is None else environ
    config = deepcopy(DEFAULT_CONFIG)

    if config_path:
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Failed to load configuration from {config_path}: {e}") from e
        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"Configuration in {config_path} must be a JSON object")
        for key, value in user_config.items():
            if key in NESTED_SECTIONS:
                if not isinstance(value, dict):
                    raise ConfigurationError(f"Section '{key}' must be an object")
                config[key].update(value)
            else:
                config[key] = value

    api_base = (environ.get(API_BASE_ENV) or "").strip()
    if api_base:
        config["api"]["base_url"] = api_base

    if str(config["log_level"]).upper() not in (
            "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigurationError(f"Unknown log level: {config['log_level']}")
    config["log_level"] = str(config["log_level"]).upper()

    window_size = config["ui"].get("window_size")
    if not (isinstance(window_size, (list, tuple)) and len(window_size) == 2):
        raise ConfigurationError("ui.window_size must be a [width, height] pair")

    # Expand paths
    config["log_dir"] = os.path.expanduser(config["log_dir"])
    config["session"]["file"] = os.path.expanduser(config["session"]["file"])

    return config


def is_development_mode(environ: Optional[Dict[str, str]] = None) -> bool:
    """Check if application is running in development mode."""
    environ = os.environ if environ is None else environ
    return environ.get(ENV_MODE_VAR) == "development"
