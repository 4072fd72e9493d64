"""
Server configuration.

Values come, lowest priority first, from field defaults, `JSONSVR_*`
environment variables, the JSON/YAML config file, and command-line
overrides. Config files may use either camelCase (`serviceDescriptor`,
`accessLog`, `noDefaultIndex`) or snake_case keys.
"""
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from jsonsvr.jsonsvr_serialize import deserialize, format_from_path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./config.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="JSONSVR_", extra="ignore")

    host: str = Field(default="0.0.0.0", description="Listen address")
    port: int = Field(default=8080, ge=1, le=65535, description="Listen port")
    service_descriptor: str = Field(default="./data/service.json", description="Service definition file or URI")
    imports: Dict[str, str] = Field(default_factory=dict, description="alias -> module exposed to snippets")
    access_log: bool = Field(default=False, description="Log every request and response")
    access_log_file: Optional[str] = Field(default=None, description="Access log file; console when unset")
    no_default_index: bool = Field(default=False, description="Do not serve ./index.html at /")
    log_level: str = Field(default="INFO", description="Logging level")


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def read_config_file(path: str) -> Dict[str, Any]:
    """Load a config file into snake_case keys; any problem yields {} and a warning."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        logger.warning("Could not load configuration from %s. Falling back to defaults.", path)
        return {}
    try:
        loaded = deserialize(text, fmt=format_from_path(path) or "json")
    except ValueError as e:
        logger.warning("Could not parse configuration %s (%s). Falling back to defaults.", path, e)
        return {}
    if not isinstance(loaded, dict):
        logger.warning("Configuration %s is not an object. Falling back to defaults.", path)
        return {}
    logger.info("Configuration loaded from %s.", path)
    return {_snake_case(k): v for k, v in loaded.items()}


def load_settings(config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Settings:
    values = read_config_file(config_path or DEFAULT_CONFIG_PATH)
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return Settings(**values)


__all__ = ["Settings", "DEFAULT_CONFIG_PATH", "read_config_file", "load_settings"]
