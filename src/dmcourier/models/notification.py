"""
Relay responses observed on a shared notification stream.

Every relay session of a client feeds one stream. The
[DeliveryCoordinator][dmcourier.services.delivery.DeliveryCoordinator]
matches over these variants and only acts on an
[Ack][dmcourier.models.notification.Ack] for the message it published.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from .relay import RelayAddress


@dataclass(frozen=True, slots=True)
class Ack:
    """A relay's ``OK`` answer to a published event.

    Attributes:
        relay: Relay that answered.
        message_id: Id (hex) of the event the answer refers to.
        accepted: ``True`` if the relay stored the event.
        reason: Human-readable message sent with the answer (may be empty).
    """

    relay: RelayAddress
    message_id: str
    accepted: bool
    reason: str = ""


@dataclass(frozen=True, slots=True)
class Other:
    """Any notification that is not an acknowledgement (events, notices, EOSE, ...).

    Attributes:
        relay: Relay that sent it, when known.
        description: Short description used for logging.
    """

    relay: RelayAddress | None = None
    description: str = ""


RelayResponse: TypeAlias = Ack | Other
