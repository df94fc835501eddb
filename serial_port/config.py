"""Configuration loading and dataclasses for SerialPort."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "serial_port.yaml"


@dataclass
class PortConfig:
    """Serial device settings."""
    device_template: Optional[str] = None  # e.g. "/dev/ttyUSB{index}"
    encoding: str = "utf-8"
    write_timeout: Optional[float] = None  # seconds, None blocks indefinitely


@dataclass
class LoggingConfig:
    """Logging destination and level."""
    file: Optional[str] = None  # log file path, None for no log file
    level: str = "WARNING"


@dataclass
class Config:
    """Complete configuration."""
    port: PortConfig = field(default_factory=PortConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _parse_port_config(data: dict) -> PortConfig:
    """Parse the port section from YAML data."""
    write_timeout = data.get("write_timeout")
    return PortConfig(
        device_template=data.get("device_template"),
        encoding=data.get("encoding", "utf-8"),
        write_timeout=float(write_timeout) if write_timeout is not None else None,
    )


def _parse_logging_config(data: dict) -> LoggingConfig:
    """Parse the logging section from YAML data."""
    return LoggingConfig(
        file=data.get("file"),
        level=data.get("level", "WARNING"),
    )


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML config file.

    Returns:
        Config object with port and logging settings.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    config = Config(
        port=_parse_port_config(data.get("port") or {}),
        logging=_parse_logging_config(data.get("logging") or {}),
    )
    logger.debug(f"Loaded config from {config_path}: {config}")
    return config


def find_config(config_path: Optional[str] = None) -> Config:
    """Load config_path if given, else the default file if present, else defaults."""
    if config_path is not None:
        return load_config(config_path)
    if Path(DEFAULT_CONFIG_PATH).exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return Config()
