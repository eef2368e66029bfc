"""Preference discovery configuration models.

See Also:
    [PreferenceDiscovery][dmcourier.services.discovery.PreferenceDiscovery]:
        The service class that consumes this configuration.
"""

from __future__ import annotations

from pydantic import Field

from dmcourier.core.base_service import BaseServiceConfig


class DiscoveryConfig(BaseServiceConfig):
    """Preference discovery configuration.

    Attributes:
        timeout: Seconds to wait for the seed relays to answer the query.
    """

    timeout: float = Field(
        default=5.0,
        ge=0.1,
        le=60.0,
        description="Seconds to wait for the DM relay list query",
    )
