"""Pure models with zero network I/O for relays, candidates and delivery state.

The models layer is the foundation of the package. It depends only on the
standard library and ``rfc3986`` for URL validation. Value types use
``@dataclass(frozen=True, slots=True)``; all validation happens in
``__post_init__`` so invalid instances never escape the constructor.

Attributes:
    RelayAddress: Normalized relay URL with
        [NetworkType][dmcourier.models.constants.NetworkType] detection.
    RelayCandidateSet: Insertion-ordered, deduplicated relay collection.
    PreferenceEvent: Transport-independent kind 10050 DM relay list.
    PreferencesFound, SeedFallback: The two outcomes of preference discovery.
    Ack, Other: Variants of a relay notification.
    AckState, PendingAck, DeliveryOutcome: Per-relay delivery state and
        the final report.
"""

from .candidates import RelayCandidateSet
from .constants import OVERLAY_NETWORKS, RELAY_TAG, EventKind, NetworkType, ServiceName
from .delivery import AckState, DeliveryOutcome, PendingAck
from .notification import Ack, Other, RelayResponse
from .preference import DiscoveryResult, PreferenceEvent, PreferencesFound, SeedFallback
from .relay import RelayAddress


__all__ = [
    "OVERLAY_NETWORKS",
    "RELAY_TAG",
    "Ack",
    "AckState",
    "DeliveryOutcome",
    "DiscoveryResult",
    "EventKind",
    "NetworkType",
    "Other",
    "PendingAck",
    "PreferenceEvent",
    "PreferencesFound",
    "RelayAddress",
    "RelayCandidateSet",
    "RelayResponse",
    "SeedFallback",
    "ServiceName",
]
