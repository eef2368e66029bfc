"""Pure helpers for DM relay list handling."""

from __future__ import annotations

from collections.abc import Iterable

from dmcourier.models.candidates import RelayCandidateSet
from dmcourier.models.constants import EventKind
from dmcourier.models.preference import PreferenceEvent


def select_newest(events: Iterable[PreferenceEvent], author: str) -> PreferenceEvent | None:
    """Return the most recent DM relay list authored by *author*, or ``None``.

    Relays are not trusted to honour the query filter, so events of another
    author or kind are ignored. Ties on ``created_at`` keep the lowest id,
    as replaceable-event rules prescribe.
    """
    newest: PreferenceEvent | None = None
    for event in events:
        if event.author != author or event.kind != EventKind.DM_RELAY_LIST:
            continue
        if (
            newest is None
            or event.created_at > newest.created_at
            or (event.created_at == newest.created_at and event.id < newest.id)
        ):
            newest = event
    return newest


def extract_relays(
    event: PreferenceEvent, *, rejected: list[str] | None = None
) -> RelayCandidateSet:
    """Return the valid relay addresses declared by *event*, in tag order.

    Malformed tag values are skipped and appended to *rejected* if given.
    """
    return RelayCandidateSet.from_urls(event.relay_tag_values(), rejected=rejected)
