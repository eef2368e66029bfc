"""
Per-relay delivery state and the final delivery report.

A [PendingAck][dmcourier.models.delivery.PendingAck] starts as ``WAITING``
when the message is published and moves exactly once to ``ACCEPTED``,
``REJECTED`` or ``TIMED_OUT``. The
[DeliveryOutcome][dmcourier.models.delivery.DeliveryOutcome] freezes the
per-relay states once the coordinator stops waiting.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

from .relay import RelayAddress


class AckState(StrEnum):
    """Delivery state of one relay.

    Attributes:
        WAITING: Published, no answer yet. Also the final state of relays
            that were still waiting when the notification channel broke.
        ACCEPTED: The relay answered ``OK true``.
        REJECTED: The relay answered ``OK false`` (reason attached).
        TIMED_OUT: The global deadline elapsed without an answer.
    """

    WAITING = "waiting"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class PendingAck:
    """Immutable delivery state of one relay.

    Attributes:
        state: Current [AckState][dmcourier.models.delivery.AckState].
        reason: Rejection reason; only set for ``REJECTED``.
    """

    state: AckState = AckState.WAITING
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.reason is not None and self.state != AckState.REJECTED:
            raise ValueError(f"reason is only valid for rejected acks, got {self.state}")

    @property
    def is_terminal(self) -> bool:
        return self.state != AckState.WAITING

    def resolve(self, *, accepted: bool, reason: str = "") -> PendingAck:
        """Return the terminal state for a relay answer.

        Raises:
            ValueError: If this ack already reached a terminal state.
        """
        self._ensure_waiting()
        if accepted:
            return PendingAck(AckState.ACCEPTED)
        return PendingAck(AckState.REJECTED, reason)

    def expire(self) -> PendingAck:
        """Return the ``TIMED_OUT`` state for a relay that never answered.

        Raises:
            ValueError: If this ack already reached a terminal state.
        """
        self._ensure_waiting()
        return PendingAck(AckState.TIMED_OUT)

    def _ensure_waiting(self) -> None:
        if self.is_terminal:
            raise ValueError(f"ack already terminal: {self.state}")

    def __str__(self) -> str:
        if self.state == AckState.REJECTED:
            return f"{self.state}({self.reason!r})"
        return str(self.state)


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    """Final per-relay report of one delivery.

    Attributes:
        message_id: Id (hex) of the event published to every relay.
        results: Read-only mapping of relay to its final
            [PendingAck][dmcourier.models.delivery.PendingAck], in candidate order.
        channel_error: Error text when the notification channel broke before
            the coordinator stopped waiting, otherwise ``None``.

    Examples:
        ```python
        outcome.accepted     # [RelayAddress('wss://r1.example')]
        outcome.timed_out    # [RelayAddress('wss://r2.example')]
        outcome.is_total_failure
        ```
    """

    message_id: str
    results: Mapping[RelayAddress, PendingAck] = field(default_factory=dict)
    channel_error: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "results", MappingProxyType(dict(self.results)))

    def _with_state(self, state: AckState) -> list[RelayAddress]:
        return [relay for relay, ack in self.results.items() if ack.state == state]

    @property
    def accepted(self) -> list[RelayAddress]:
        return self._with_state(AckState.ACCEPTED)

    @property
    def rejected(self) -> list[RelayAddress]:
        return self._with_state(AckState.REJECTED)

    @property
    def timed_out(self) -> list[RelayAddress]:
        return self._with_state(AckState.TIMED_OUT)

    @property
    def unanswered(self) -> list[RelayAddress]:
        """Relays that never answered, whether timed out or cut off by a channel error."""
        return [
            relay
            for relay, ack in self.results.items()
            if ack.state in (AckState.WAITING, AckState.TIMED_OUT)
        ]

    @property
    def is_total_failure(self) -> bool:
        """``True`` if the notification channel broke before any relay answered.

        Timeouts alone are not a total failure: the message was published and
        each silent relay is reported individually.
        """
        return self.channel_error is not None and len(self.unanswered) == len(self.results)

    def summary(self) -> dict[str, str]:
        """Return ``{url: state}`` strings, convenient for logging."""
        return {relay.url: str(ack) for relay, ack in self.results.items()}
