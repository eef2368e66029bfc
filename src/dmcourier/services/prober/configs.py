"""Liveness prober configuration models.

See Also:
    [LivenessProber][dmcourier.services.prober.LivenessProber]: The service
        class that consumes this configuration.
    [NetworkConfig][dmcourier.services.common.configs.NetworkConfig]:
        Per-network timeouts and proxies.
"""

from __future__ import annotations

from pydantic import Field

from dmcourier.core.base_service import BaseServiceConfig
from dmcourier.services.common.configs import NetworkConfig


class ProberConfig(BaseServiceConfig):
    """Liveness prober configuration.

    Attributes:
        max_tasks: Maximum number of probes in flight at once.
        networks: Per-network enablement, proxy and probe timeout.
    """

    max_tasks: int = Field(default=20, ge=1, le=200, description="Concurrent probes")
    networks: NetworkConfig = Field(default_factory=NetworkConfig)
