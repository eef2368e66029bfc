r"""dmcourier -- Nostr direct message delivery with relay discovery and confirmation.

Sends one NIP-17 direct message per invocation: the receiver's declared DM
relays are discovered, merged with the sender's own relays, probed for
liveness, and the message is published to the survivors while every
relay's acknowledgement is collected under a global deadline.

Imports flow strictly downward:

```text
              services         Discovery, probing, delivery, courier
             /        \
          core        utils    Infrastructure / keys, relay client, probes
             \        /
              models           Pure frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from dmcourier import Courier``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("dmcourier")

__all__ = [
    "AckState",
    "BaseService",
    "Courier",
    "CourierConfig",
    "CourierReport",
    "DeliveryConfig",
    "DeliveryCoordinator",
    "DeliveryOutcome",
    "DiscoveryConfig",
    "LivenessProber",
    "LogConfig",
    "Logger",
    "NetworkType",
    "NostrRelayNetwork",
    "PendingAck",
    "PreferenceDiscovery",
    "ProberConfig",
    "RelayAddress",
    "RelayCandidateSet",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("dmcourier.core", "BaseService"),
    "LogConfig": ("dmcourier.core", "LogConfig"),
    "Logger": ("dmcourier.core", "Logger"),
    "AckState": ("dmcourier.models", "AckState"),
    "DeliveryOutcome": ("dmcourier.models", "DeliveryOutcome"),
    "NetworkType": ("dmcourier.models", "NetworkType"),
    "PendingAck": ("dmcourier.models", "PendingAck"),
    "RelayAddress": ("dmcourier.models", "RelayAddress"),
    "RelayCandidateSet": ("dmcourier.models", "RelayCandidateSet"),
    "Courier": ("dmcourier.services", "Courier"),
    "CourierConfig": ("dmcourier.services", "CourierConfig"),
    "CourierReport": ("dmcourier.services", "CourierReport"),
    "DeliveryConfig": ("dmcourier.services", "DeliveryConfig"),
    "DeliveryCoordinator": ("dmcourier.services", "DeliveryCoordinator"),
    "DiscoveryConfig": ("dmcourier.services", "DiscoveryConfig"),
    "LivenessProber": ("dmcourier.services", "LivenessProber"),
    "PreferenceDiscovery": ("dmcourier.services", "PreferenceDiscovery"),
    "ProberConfig": ("dmcourier.services", "ProberConfig"),
    "NostrRelayNetwork": ("dmcourier.utils.protocol", "NostrRelayNetwork"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'dmcourier' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
