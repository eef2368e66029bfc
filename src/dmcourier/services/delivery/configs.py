"""Delivery coordinator configuration models.

See Also:
    [DeliveryCoordinator][dmcourier.services.delivery.DeliveryCoordinator]:
        The service class that consumes this configuration.
"""

from __future__ import annotations

from pydantic import Field

from dmcourier.core.base_service import BaseServiceConfig


class DeliveryConfig(BaseServiceConfig):
    """Delivery coordinator configuration.

    Attributes:
        deadline: Seconds to wait for acknowledgements, counted from the
            moment the publish call returns.
    """

    deadline: float = Field(
        default=5.0, ge=0.5, le=120.0, description="Acknowledgement deadline in seconds"
    )
