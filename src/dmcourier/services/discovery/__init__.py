"""Preference discovery service package.

Re-exports all public symbols::

    from dmcourier.services.discovery import DiscoveryConfig, PreferenceDiscovery
"""

from .configs import DiscoveryConfig
from .service import PreferenceDiscovery
from .utils import extract_relays, select_newest


__all__ = [
    "DiscoveryConfig",
    "PreferenceDiscovery",
    "extract_relays",
    "select_newest",
]
