"""YAML configuration and logging setup

This module provides YAML-based configuration for Quantum handles together
with the logging configuration used by applications embedding them.
"""

import logging
import logging.handlers
import os
from dataclasses import dataclass, asdict, field, fields
from typing import Any, Dict, Optional, Union, get_args, get_origin, get_type_hints

import yaml

from ..core.quantum_config import QuantumConfig

logger = logging.getLogger(__name__)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def convert_field_value(value: Any, field_type: type) -> Any:
    """Convert a value to the appropriate type based on field annotation"""
    # Handle None values
    if value is None:
        return None

    # Handle string 'null' values from YAML
    if isinstance(value, str) and value.lower() in ('null', 'none', '~'):
        return None

    # Handle Optional[T] which is Union[T, None]
    if get_origin(field_type) is Union:
        non_none_types = [arg for arg in get_args(field_type) if arg is not type(None)]
        if non_none_types:
            return convert_field_value(value, non_none_types[0])

    if field_type == float:
        return float(value)
    elif field_type == int:
        return int(value)
    elif field_type == bool:
        if isinstance(value, str):
            return value.lower() in ('true', '1', 'yes', 'on')
        return bool(value)
    return value


def _convert_section(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    hints = get_type_hints(cls)
    known = {f.name for f in fields(cls)}
    converted = {}
    for key, value in data.items():
        if key in known:
            converted[key] = convert_field_value(value, hints[key])
        else:
            logger.warning(f"Unknown config parameter: {key}")
    return converted


@dataclass
class LogConfig:
    """Logging configuration"""
    level: str = "WARNING"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    console: bool = True
    file_path: Optional[str] = None
    file_level: str = "DEBUG"
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 3

    def __post_init__(self):
        """Validate logging configuration"""
        self.level = self.level.upper()
        self.file_level = self.file_level.upper()
        if self.level not in LOG_LEVELS:
            raise ValueError(f"Invalid level: {self.level}")
        if self.file_level not in LOG_LEVELS:
            raise ValueError(f"Invalid file_level: {self.file_level}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogConfig':
        return cls(**_convert_section(cls, data))


@dataclass
class QuantumFullConfig:
    """Complete configuration: handle settings plus logging"""
    quantum: QuantumConfig = field(default_factory=QuantumConfig)
    log: LogConfig = field(default_factory=LogConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'quantum': self.quantum.to_dict(),
            'log': self.log.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuantumFullConfig':
        """Create from dictionary"""
        data = data or {}
        return cls(
            quantum=QuantumConfig(**_convert_section(QuantumConfig, data.get('quantum') or {})),
            log=LogConfig.from_dict(data.get('log') or {}),
        )

    def save(self, path: str):
        """Save configuration to YAML file"""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load(cls, path: str) -> 'QuantumFullConfig':
        """Load configuration from YAML file"""
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        config = cls.from_dict(data)
        logger.info(f"Configuration loaded from {path}")
        return config


def setup_logging(config: Optional[LogConfig] = None) -> logging.Logger:
    """Configure the package logger from a LogConfig

    Handlers are attached to the 'quantum' logger only, so the host
    application's root logger is left alone.
    """
    config = config or LogConfig()
    package_logger = logging.getLogger('quantum')
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format, datefmt=config.datefmt)

    if config.console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(config.level)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

    levels = [logging.getLevelName(config.level)]
    if config.file_path:
        os.makedirs(os.path.dirname(config.file_path) or '.', exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(config.file_level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)
        levels.append(logging.getLevelName(config.file_level))

    package_logger.setLevel(min(levels))
    logger.info(f"Logging configured - level: {config.level}, file: {config.file_path}")
    return package_logger
