"""Courier service package.

Re-exports all public symbols::

    from dmcourier.services.courier import Courier, CourierConfig, CourierReport
"""

from .configs import CourierConfig
from .service import Courier, CourierReport


__all__ = [
    "Courier",
    "CourierConfig",
    "CourierReport",
]
