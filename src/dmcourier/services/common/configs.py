"""Per-network probe settings shared by the services.

Each network type has its own config class with defaults suited to its
latency, so YAML files can override a single field (e.g. only
``tor.enabled: true``) and inherit the rest.

Examples:
    ```yaml
    networks:
      clearnet:
        timeout: 2.0
      tor:
        enabled: true  # Inherits default proxy_url
    ```
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from dmcourier.models.constants import NetworkType


class ClearnetConfig(BaseModel):
    """Clearnet (public internet) relays: direct connections, short timeout."""

    enabled: bool = True
    proxy_url: str | None = None
    timeout: float = Field(default=1.0, ge=0.1, le=60.0)


class LocalConfig(BaseModel):
    """Loopback, private-address and single-label hosts."""

    enabled: bool = True
    proxy_url: str | None = None
    timeout: float = Field(default=1.0, ge=0.1, le=60.0)


class TorConfig(BaseModel):
    """Tor (.onion) relays. Require a SOCKS5 proxy."""

    enabled: bool = False
    proxy_url: str | None = "socks5://127.0.0.1:9050"
    timeout: float = Field(default=10.0, ge=0.1, le=60.0)


class I2pConfig(BaseModel):
    """I2P (.i2p) relays. Require a SOCKS5 proxy."""

    enabled: bool = False
    proxy_url: str | None = "socks5://127.0.0.1:4447"
    timeout: float = Field(default=15.0, ge=0.1, le=60.0)


class LokiConfig(BaseModel):
    """Lokinet (.loki) relays. Require a SOCKS5 proxy.

    Warning:
        Lokinet is only supported on Linux.
    """

    enabled: bool = False
    proxy_url: str | None = "socks5://127.0.0.1:1080"
    timeout: float = Field(default=10.0, ge=0.1, le=60.0)


NetworkTypeConfig = ClearnetConfig | LocalConfig | TorConfig | I2pConfig | LokiConfig


class NetworkConfig(BaseModel):
    """Unified per-network configuration container.

    Examples:
        ```python
        config = NetworkConfig(tor=TorConfig(enabled=True))
        config.is_enabled(NetworkType.TOR)      # True
        config.get_proxy_url(NetworkType.TOR)   # 'socks5://127.0.0.1:9050'
        ```
    """

    clearnet: ClearnetConfig = Field(default_factory=ClearnetConfig)
    local: LocalConfig = Field(default_factory=LocalConfig)
    tor: TorConfig = Field(default_factory=TorConfig)
    i2p: I2pConfig = Field(default_factory=I2pConfig)
    loki: LokiConfig = Field(default_factory=LokiConfig)

    def get(self, network: NetworkType) -> NetworkTypeConfig:
        """Return the config of *network*, falling back to clearnet."""
        return getattr(self, network.value, self.clearnet)

    def get_proxy_url(self, network: NetworkType) -> str | None:
        """Return the proxy URL of *network* if it is enabled, else ``None``."""
        config = self.get(network)
        return config.proxy_url if config.enabled else None

    def is_enabled(self, network: NetworkType) -> bool:
        return self.get(network).enabled

    def get_timeout(self, network: NetworkType) -> float:
        return self.get(network).timeout
