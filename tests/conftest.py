"""
Pytest configuration and shared fixtures for dmcourier tests.

Provides:
- In-memory FakeRelayNetwork / FakeRelaySession implementations
- Nostr key fixtures for sender and receiver
- Sample relay, candidate and preference event fixtures
- Custom pytest markers for test categorization
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import pytest
from nostr_sdk import Keys

from dmcourier.models import (
    EventKind,
    PreferenceEvent,
    RelayAddress,
    RelayCandidateSet,
    RelayResponse,
)
from dmcourier.utils.protocol import NotificationChannel, RelayNetwork, RelaySession


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Fake Relay Network
# ============================================================================


MESSAGE_ID = "e" * 64


class FakeRelaySession(RelaySession):
    """Session driven by the script of its FakeRelayNetwork."""

    def __init__(self, network: "FakeRelayNetwork", relays: RelayCandidateSet, keys: Any) -> None:
        self._network = network
        self._relays = relays
        self.keys = keys
        self.closed = False
        self._channel: NotificationChannel | None = None
        self._handles: list[asyncio.TimerHandle] = []

    @property
    def relays(self) -> RelayCandidateSet:
        return self._relays

    async def fetch_events(
        self,
        kind: int,
        authors: list[str],
        *,
        limit: int,
        timeout: float,  # noqa: ASYNC109
    ) -> list[PreferenceEvent]:
        self._network.fetch_calls.append(
            {"relays": self._relays.urls, "kind": kind, "authors": authors, "limit": limit}
        )
        if self._network.fetch_error is not None:
            raise self._network.fetch_error
        return list(self._network.events.get(authors[0], []))

    async def send_private_msg(self, receiver: Any, message: str) -> str:
        self._network.sent.append({"relays": self._relays.urls, "receiver": receiver, "message": message})
        self._network.subscribed_before_send = self._channel is not None
        if self._network.send_error is not None:
            raise self._network.send_error

        channel = self.notifications()
        loop = asyncio.get_running_loop()
        for delay, response in self._network.responses:
            self._handles.append(loop.call_later(delay, channel.push, response))
        if self._network.channel_error_after is not None:
            self._handles.append(
                loop.call_later(self._network.channel_error_after, channel.close, "channel broke")
            )
        return self._network.message_id

    def notifications(self) -> NotificationChannel:
        if self._channel is None:
            self._channel = NotificationChannel()
        return self._channel

    async def close(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self.closed = True


class FakeRelayNetwork(RelayNetwork):
    """Scriptable in-memory relay network.

    Attributes:
        events: Preference events returned by queries, keyed by author hex.
        responses: ``(delay, response)`` pairs pushed after a publish.
        channel_error_after: Close the notification channel after this many
            seconds, or ``None``.
        unusable: URLs the network refuses to add to a session.
        unroutable: URLs the network reports it has no route to.
    """

    def __init__(self) -> None:
        self.events: dict[str, list[PreferenceEvent]] = {}
        self.responses: list[tuple[float, RelayResponse]] = []
        self.message_id = MESSAGE_ID
        self.channel_error_after: float | None = None
        self.unusable: set[str] = set()
        self.unroutable: set[str] = set()
        self.open_error: BaseException | None = None
        self.fetch_error: BaseException | None = None
        self.send_error: BaseException | None = None
        self.sessions: list[FakeRelaySession] = []
        self.fetch_calls: list[dict[str, Any]] = []
        self.sent: list[dict[str, Any]] = []
        self.subscribed_before_send: bool | None = None

    def can_route(self, relay: RelayAddress) -> bool:
        return relay.url not in self.unroutable

    async def open_session(
        self, relays: RelayCandidateSet, *, keys: Keys | None = None
    ) -> FakeRelaySession:
        if self.open_error is not None:
            raise self.open_error
        usable = RelayCandidateSet(r for r in relays if r.url not in self.unusable)
        session = FakeRelaySession(self, usable, keys)
        self.sessions.append(session)
        return session


@pytest.fixture
def fake_network() -> FakeRelayNetwork:
    """Empty scriptable relay network."""
    return FakeRelayNetwork()


# ============================================================================
# Key Fixtures
# ============================================================================


@pytest.fixture
def sender_keys() -> Keys:
    """Freshly generated sender keys."""
    return Keys.generate()


@pytest.fixture
def receiver_keys() -> Keys:
    """Freshly generated receiver keys."""
    return Keys.generate()


# ============================================================================
# Sample Data Fixtures
# ============================================================================


def make_relays(*urls: str) -> RelayCandidateSet:
    """Build a candidate set from URLs that are known to be valid."""
    return RelayCandidateSet(RelayAddress(url) for url in urls)


def make_preference_event(
    author: str,
    relays: Iterable[str] = (),
    *,
    event_id: str = "a" * 64,
    created_at: int = 1700000000,
    kind: int = EventKind.DM_RELAY_LIST,
) -> PreferenceEvent:
    """Build a DM relay list event declaring *relays*."""
    return PreferenceEvent(
        id=event_id,
        author=author,
        created_at=created_at,
        tags=tuple(("relay", url) for url in relays),
        kind=kind,
    )


@pytest.fixture
def make_event() -> Any:
    """Factory fixture for DM relay list events."""
    return make_preference_event


@pytest.fixture
def sample_relay() -> RelayAddress:
    """Sample clearnet relay."""
    return RelayAddress("wss://relay.example.com")


@pytest.fixture
def sample_candidates() -> RelayCandidateSet:
    """Three clearnet relays in priority order."""
    return make_relays("wss://r1.example.com", "wss://r2.example.com", "wss://r3.example.com")


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (no external dependencies)")
    config.addinivalue_line("markers", "slow: marks tests as slow running")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
