"""Infrastructure shared by every stage: base service, errors, logging, YAML.

Attributes:
    BaseService: Generic base class with typed config and structured logger.
    BaseServiceConfig: Base Pydantic configuration model.
    Logger: Structured key=value / JSON logger.
    LogConfig: Logging settings read once at startup.
    load_yaml: Safe YAML loader.
"""

from .base_service import BaseService, BaseServiceConfig, ConfigT
from .exceptions import (
    ConfigurationError,
    ConnectivityError,
    DmCourierError,
    NoLiveRelaysError,
    NotificationChannelError,
    PublishingError,
)
from .logger import LogConfig, Logger, StructuredFormatter, format_kv_pairs, setup_logging
from .yaml import load_yaml


__all__ = [
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "ConfigurationError",
    "ConnectivityError",
    "DmCourierError",
    "LogConfig",
    "Logger",
    "NoLiveRelaysError",
    "NotificationChannelError",
    "PublishingError",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
    "setup_logging",
]
