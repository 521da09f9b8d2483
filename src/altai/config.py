"""Configuration loader with YAML and environment variable support.

Reads ~/.config/altai/config.yaml (if present) and applies environment
variable overrides on top.

Environment variables:
- ALTAI_API_KEY (or OPENAI_API_KEY): Override api_key
- ALTAI_MODEL (or OPENAI_MODEL): Override model.name
- ALTAI_ENDPOINT: Override endpoint
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from altai.models.config import Config
from altai.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "altai" / "config.yaml"


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    A missing file is not an error: every setting has a default, and a
    missing API key is reported when a call is attempted.

    Args:
        config_path: Path to config file. If None, uses ~/.config/altai/config.yaml

    Returns:
        Validated Config object

    Raises:
        PermissionError: If the config file is group/world accessible
        ValueError: If the config file is invalid
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        # Config.load enforces the permission check
        data = Config.load(config_path).model_dump(mode="json")
        logger.info("config_loaded", path=str(config_path))
    else:
        data = {}
        logger.info("config_file_missing", path=str(config_path))

    data = _apply_env_overrides(data)

    return Config(**data)


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration data.

    Args:
        data: Base configuration dictionary from YAML

    Returns:
        Configuration dictionary with environment overrides applied
    """
    if "model" not in data:
        data["model"] = {}

    if env_api_key := os.getenv("ALTAI_API_KEY") or os.getenv("OPENAI_API_KEY"):
        data["api_key"] = env_api_key

    if env_model := os.getenv("ALTAI_MODEL") or os.getenv("OPENAI_MODEL"):
        data["model"]["name"] = env_model

    if env_endpoint := os.getenv("ALTAI_ENDPOINT"):
        data["endpoint"] = env_endpoint

    return data


def dump_yaml(config: Config) -> str:
    """Render a config as YAML (API key redacted), for `altai config show`."""
    data = config.model_dump(mode="json")
    if data.get("api_key"):
        data["api_key"] = "***"
    return yaml.safe_dump(data, sort_keys=False)
