"""Liveness prober service package.

Re-exports all public symbols::

    from dmcourier.services.prober import LivenessProber, ProberConfig
"""

from .configs import ProberConfig
from .service import LivenessProber


__all__ = [
    "LivenessProber",
    "ProberConfig",
]
