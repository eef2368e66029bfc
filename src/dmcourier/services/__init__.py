"""The pipeline stages and their orchestrator.

Services are the top layer, depending on [dmcourier.core][dmcourier.core],
[dmcourier.utils][dmcourier.utils] and [dmcourier.models][dmcourier.models].
Each stage extends [BaseService][dmcourier.core.base_service.BaseService]
and runs at most once per invocation.

```text
PreferenceDiscovery -> LivenessProber -> DeliveryCoordinator
          \________________ Courier ________________/
```

Attributes:
    PreferenceDiscovery: Finds an identity's kind 10050 DM relays, falling
        back to the seed relays.
    LivenessProber: Concurrent, bounded TCP reachability filter.
    DeliveryCoordinator: Publishes the message and aggregates per-relay
        acknowledgements under a global deadline.
    Courier: Runs the stages for one message.

See Also:
    [common][dmcourier.services.common]: Per-network probe settings.
"""

from .common import NetworkConfig
from .courier import Courier, CourierConfig, CourierReport
from .delivery import DeliveryConfig, DeliveryCoordinator
from .discovery import DiscoveryConfig, PreferenceDiscovery
from .prober import LivenessProber, ProberConfig


__all__ = [
    "Courier",
    "CourierConfig",
    "CourierReport",
    "DeliveryConfig",
    "DeliveryCoordinator",
    "DiscoveryConfig",
    "LivenessProber",
    "NetworkConfig",
    "PreferenceDiscovery",
    "ProberConfig",
]
