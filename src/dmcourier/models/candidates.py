"""
Ordered, deduplicated collection of relay delivery candidates.

Position in a [RelayCandidateSet][dmcourier.models.candidates.RelayCandidateSet]
is a soft priority hint: relays declared by the receiver come before
supplementary relays merged in from the sender's cc list, and no operation
ever moves an existing member.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator

from .relay import RelayAddress


class RelayCandidateSet:
    """Insertion-ordered set of [RelayAddress][dmcourier.models.relay.RelayAddress].

    Uniqueness is enforced on insertion using the normalized URL, so the
    first-seen source of an address keeps its position.

    Examples:
        ```python
        candidates = RelayCandidateSet.from_urls(["wss://a.example", "wss://b.example"])
        candidates.add(RelayAddress("wss://A.example/"))  # False, already present
        cc = RelayCandidateSet.from_urls(["wss://b.example", "wss://c.example"])
        candidates.merge(cc)
        [r.url for r in candidates]
        # ['wss://a.example', 'wss://b.example', 'wss://c.example']
        ```
    """

    __slots__ = ("_members",)

    def __init__(self, relays: Iterable[RelayAddress] = ()) -> None:
        # dict preserves insertion order and gives O(1) membership
        self._members: dict[RelayAddress, None] = {}
        for relay in relays:
            self.add(relay)

    @classmethod
    def from_urls(
        cls, urls: Iterable[str], *, rejected: list[str] | None = None
    ) -> RelayCandidateSet:
        """Build a set from raw URL strings, skipping values that do not validate.

        Args:
            urls: Raw relay URLs in priority order.
            rejected: Optional list that receives every skipped raw value.
        """
        candidates = cls()
        for raw in urls:
            relay = RelayAddress.parse(raw)
            if relay is None:
                if rejected is not None:
                    rejected.append(raw)
                continue
            candidates.add(relay)
        return candidates

    def add(self, relay: RelayAddress) -> bool:
        """Insert *relay* if absent. Returns ``True`` when it was inserted."""
        if not isinstance(relay, RelayAddress):
            raise TypeError(f"relay must be a RelayAddress, got {type(relay).__name__}")
        if relay in self._members:
            return False
        self._members[relay] = None
        return True

    def merge(
        self,
        other: Iterable[RelayAddress],
        excluding: Iterable[RelayAddress] = (),
    ) -> int:
        """Append members of *other* not already here and not in *excluding*.

        Preserves the relative order of *other*. Returns the number of
        relays appended.
        """
        excluded = set(excluding)
        added = 0
        for relay in other:
            if relay in excluded:
                continue
            if self.add(relay):
                added += 1
        return added

    def filter(self, predicate: Callable[[RelayAddress], bool]) -> RelayCandidateSet:
        """Return a new set with the members satisfying *predicate*, in order."""
        return RelayCandidateSet(relay for relay in self._members if predicate(relay))

    def copy(self) -> RelayCandidateSet:
        return RelayCandidateSet(self._members)

    @property
    def urls(self) -> list[str]:
        """Normalized URLs in candidate order."""
        return [relay.url for relay in self._members]

    def __contains__(self, item: object) -> bool:
        return item in self._members

    def __iter__(self) -> Iterator[RelayAddress]:
        return iter(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __bool__(self) -> bool:
        return bool(self._members)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RelayCandidateSet):
            return NotImplemented
        return list(self._members) == list(other._members)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"RelayCandidateSet({self.urls!r})"
