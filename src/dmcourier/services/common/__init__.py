"""Configuration models shared by several services."""

from .configs import (
    ClearnetConfig,
    I2pConfig,
    LocalConfig,
    LokiConfig,
    NetworkConfig,
    NetworkTypeConfig,
    TorConfig,
)


__all__ = [
    "ClearnetConfig",
    "I2pConfig",
    "LocalConfig",
    "LokiConfig",
    "NetworkConfig",
    "NetworkTypeConfig",
    "TorConfig",
]
