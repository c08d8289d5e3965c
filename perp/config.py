"""Configuration and environment variables."""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .exceptions import ConfigurationError

# Global config directory
CONFIG_DIR = Path.home() / ".perp"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
LOCAL_CONFIG_NAME = ".perp.yaml"

CONFIG_TEMPLATE = """# perp configuration
# Environment variables override everything in this file:
#   PERPLEXITY_API_KEY, PERP_MODEL, PERP_ENDPOINT, PERP_DEBUG

api_key: ""
endpoint: "https://api.perplexity.ai"
model: "sonar"

# Sampling (omit max_tokens to let the server decide)
temperature: 0.2
top_p: 0.9
# max_tokens: 1024

request_timeout: 60.0
show_citations: true
debug: false
"""


def ensure_config_dir() -> Path:
    """Create config directory if it doesn't exist."""
    if not CONFIG_DIR.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR


def ensure_config_file() -> Path:
    """Create template config file if it doesn't exist."""
    ensure_config_dir()
    if not CONFIG_FILE.exists():
        CONFIG_FILE.write_text(CONFIG_TEMPLATE)
    return CONFIG_FILE


def _read_config_file(path: str) -> dict:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


@dataclass
class Config:
    """Application configuration."""

    api_key: str = ""
    base_url: str = "https://api.perplexity.ai"
    model: str = "sonar"

    # Sampling
    temperature: Optional[float] = 0.2
    top_p: Optional[float] = 0.9
    max_tokens: Optional[int] = None

    request_timeout: float = 60.0
    show_citations: bool = True
    debug: bool = False

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from file and environment variables.

        Config priority (later overrides earlier):
        1. ~/.perp/config.yaml (global)
        2. .perp.yaml (local project)
        3. Environment variables

        Raises:
            ConfigurationError: If a config file is not a valid YAML mapping
        """
        config_data = {}

        # Creates the template on first run
        ensure_config_file()

        config_paths = [
            str(CONFIG_FILE),
            os.path.join(os.getcwd(), LOCAL_CONFIG_NAME),
        ]

        for path in config_paths:
            if os.path.exists(path):
                file_data = _read_config_file(path)
                # Support both 'base_url' and 'endpoint'
                if "endpoint" in file_data and "base_url" not in file_data:
                    file_data["base_url"] = file_data.pop("endpoint")
                config_data.update(file_data)

        known = {f.name for f in fields(cls)}
        config = cls(**{k: v for k, v in config_data.items() if k in known})

        # Environment variables have the highest priority
        env_api_key = os.getenv("PERPLEXITY_API_KEY", os.getenv("PERP_API_KEY", ""))
        if env_api_key:
            config.api_key = env_api_key

        env_base_url = os.getenv("PERP_ENDPOINT", "")
        if env_base_url:
            config.base_url = env_base_url

        env_model = os.getenv("PERP_MODEL", "")
        if env_model:
            config.model = env_model

        if os.getenv("PERP_DEBUG"):
            config.debug = os.getenv("PERP_DEBUG", "").lower() == "true"

        return config

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []
        if not self.api_key:
            errors.append(
                f"API key not set. Edit {CONFIG_FILE} or set PERPLEXITY_API_KEY env var"
            )
        if not self.model:
            errors.append("Model name must not be empty")
        return errors

    @staticmethod
    def get_config_path() -> Path:
        """Return path to global config file."""
        return CONFIG_FILE
