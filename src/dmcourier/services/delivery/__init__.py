"""Delivery coordinator service package.

Re-exports all public symbols::

    from dmcourier.services.delivery import DeliveryConfig, DeliveryCoordinator
"""

from .configs import DeliveryConfig
from .service import DeliveryCoordinator


__all__ = [
    "DeliveryConfig",
    "DeliveryCoordinator",
]
