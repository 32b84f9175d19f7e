"""Configuration for domain proxies.

Values come from the environment, optionally seeded from a ``.env`` file:

    DOMPROXY_AUTO_RECONNECT=true
    DOMPROXY_AUTO_RELOAD=true
    DOMPROXY_LOG_LEVEL=INFO
    DOMPROXY_LOG_FILE=domproxy.log
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from domproxy.logger import get_logger, setup_logger

logger = get_logger("config")

ENV_PREFIX = "DOMPROXY_"


class ProxyConfig(BaseModel):
    """Settings shared by a domain proxy and the connection it creates."""

    auto_reconnect: bool = Field(True, description="Reconnect the connection after it closes")
    auto_reload: bool = Field(True, description="Reload registered domains after reconnecting")
    log_level: str = Field("INFO", description="Logging level")
    log_file: Optional[str] = Field(None, description="Optional log file path")

    class Config:
        """Pydantic configuration."""

        frozen = True


def load_config(env_file: Optional[str | Path] = None) -> ProxyConfig:
    """
    Load proxy configuration from the environment.

    Args:
        env_file: Optional path to a ``.env`` file. When None, python-dotenv
            searches for one starting from the working directory. Variables
            already present in the environment win over the file.

    Returns:
        ProxyConfig: Parsed configuration object

    Raises:
        ValidationError: If a variable holds an invalid value
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    data = {}
    for field_name in ProxyConfig.model_fields:
        value = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
        if value is not None:
            data[field_name] = value

    try:
        config = ProxyConfig(**data)
    except ValidationError as e:
        logger.error(f"Invalid domproxy configuration: {e}")
        raise

    logger.debug(f"Loaded configuration: {config}")
    return config


def setup_logging(config: ProxyConfig) -> None:
    """Reconfigure the package logger from the configuration's log settings."""
    setup_logger(log_file=config.log_file, log_level=config.log_level)
    logger.debug(f"Logging configured (level={config.log_level}, file={config.log_file})")
