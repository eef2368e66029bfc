"""Shared constants for the models layer.

Defines enumerations used across multiple model modules. Placing them here
avoids circular dependencies between the models and utils layers.

See Also:
    [dmcourier.models.relay][]: Uses [NetworkType][dmcourier.models.constants.NetworkType]
        to classify relay URLs during construction.
    [dmcourier.services.prober][]: Selects per-network probe settings from it.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class NetworkType(StrEnum):
    """Network type enum for relay classification.

    Each relay URL is classified into exactly one network type during
    [RelayAddress][dmcourier.models.relay.RelayAddress] construction.

    Attributes:
        CLEARNET: Public internet relay.
        TOR: Tor hidden service identified by a ``.onion`` hostname.
        I2P: I2P eepsite identified by a ``.i2p`` hostname.
        LOKI: Lokinet service identified by a ``.loki`` hostname.
        LOCAL: Loopback, private or reserved IP address, or a single-label
            hostname such as ``localhost`` or a container name.
        UNKNOWN: Hostname that could not be classified (rejected during validation).

    Examples:
        ```python
        RelayAddress("wss://relay.damus.io").network   # NetworkType.CLEARNET
        RelayAddress("ws://abc123.onion").network       # NetworkType.TOR
        RelayAddress("ws://localhost:7777").network     # NetworkType.LOCAL
        ```

    Warning:
        ``UNKNOWN`` causes [RelayAddress][dmcourier.models.relay.RelayAddress]
        construction to raise ``ValueError``. It exists for internal detection
        logic and is never exposed on a successfully constructed instance.
    """

    CLEARNET = "clearnet"
    TOR = "tor"
    I2P = "i2p"
    LOKI = "loki"
    LOCAL = "local"
    UNKNOWN = "unknown"


OVERLAY_NETWORKS: frozenset[NetworkType] = frozenset(
    {NetworkType.TOR, NetworkType.I2P, NetworkType.LOKI}
)


class ServiceName(StrEnum):
    """Canonical service identifiers used as logger names.

    Attributes:
        DISCOVERY: Relay preference discovery
            ([PreferenceDiscovery][dmcourier.services.discovery.PreferenceDiscovery]).
        PROBER: TCP liveness probing
            ([LivenessProber][dmcourier.services.prober.LivenessProber]).
        DELIVERY: Publish and acknowledgement aggregation
            ([DeliveryCoordinator][dmcourier.services.delivery.DeliveryCoordinator]).
        COURIER: End-to-end orchestration
            ([Courier][dmcourier.services.courier.Courier]).
    """

    DISCOVERY = "discovery"
    PROBER = "prober"
    DELIVERY = "delivery"
    COURIER = "courier"


class EventKind(IntEnum):
    """Well-known Nostr event kinds used by the courier.

    Attributes:
        PRIVATE_DIRECT_MESSAGE: Kind 14 -- NIP-17 chat message (the rumor).
        DM_RELAY_LIST: Kind 10050 -- NIP-17 list of relays an identity wants
            direct messages delivered to (the preference event).
    """

    PRIVATE_DIRECT_MESSAGE = 14
    DM_RELAY_LIST = 10_050


RELAY_TAG = "relay"
