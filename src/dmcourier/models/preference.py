"""
DM relay preference events and the result of preference discovery.

A [PreferenceEvent][dmcourier.models.preference.PreferenceEvent] is the
signed, replaceable kind 10050 record in which an identity declares the
relays it wants direct messages delivered to. Discovery never returns a
nullable value: it returns either
[PreferencesFound][dmcourier.models.preference.PreferencesFound] or
[SeedFallback][dmcourier.models.preference.SeedFallback], so callers always
handle the fallback branch explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeAlias

from .candidates import RelayCandidateSet
from .constants import RELAY_TAG, EventKind


@dataclass(frozen=True, slots=True)
class PreferenceEvent:
    """Transport-independent view of a DM relay list event.

    Attributes:
        id: Event id (hex).
        author: Author public key (hex).
        created_at: Unix timestamp of the event.
        tags: Raw tag arrays, in event order.
        kind: Event kind, normally ``EventKind.DM_RELAY_LIST``.
    """

    id: str
    author: str
    created_at: int
    tags: tuple[tuple[str, ...], ...] = field(default=())
    kind: int = EventKind.DM_RELAY_LIST

    def __post_init__(self) -> None:
        # Deep-freeze tag arrays so the event stays immutable
        object.__setattr__(self, "tags", tuple(tuple(tag) for tag in self.tags))

    def relay_tag_values(self) -> list[str]:
        """Return the address field of every ``relay`` tag, unvalidated, in order."""
        return [tag[1] for tag in self.tags if len(tag) >= 2 and tag[0] == RELAY_TAG]


@dataclass(frozen=True, slots=True)
class PreferencesFound:
    """The identity published a preference event with at least one usable relay."""

    relays: RelayCandidateSet
    event: PreferenceEvent


@dataclass(frozen=True, slots=True)
class SeedFallback:
    """No usable preference event was found; the seed relays are returned unchanged."""

    relays: RelayCandidateSet


DiscoveryResult: TypeAlias = PreferencesFound | SeedFallback
