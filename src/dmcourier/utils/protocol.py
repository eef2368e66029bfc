"""Relay network client: sessions, queries, publishing and notifications.

The pipeline stages never talk to ``nostr-sdk`` directly. They consume the
[RelayNetwork][dmcourier.utils.protocol.RelayNetwork] /
[RelaySession][dmcourier.utils.protocol.RelaySession] interfaces, which
[NostrRelayNetwork][dmcourier.utils.protocol.NostrRelayNetwork] implements on
top of ``nostr_sdk.Client``. Tests substitute in-memory implementations.

Attributes:
    create_client: Client factory with optional signing keys and SOCKS5 proxy.
    NotificationChannel: Async queue of
        [RelayResponse][dmcourier.models.notification.RelayResponse] values
        shared by every relay of a session.
    NostrRelayNetwork: ``nostr-sdk`` backed relay network.

Note:
    Adding and connecting relays is best-effort: a relay that cannot be
    added or connected is logged and skipped, never fatal. Publishing errors
    are raised to the caller.

Examples:
    ```python
    network = NostrRelayNetwork(proxy_url="socks5://127.0.0.1:9050")
    async with await network.open_session(candidates, keys=keys) as session:
        channel = session.notifications()
        message_id = await session.send_private_msg(receiver, "hello")
        response = await channel.recv()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from abc import ABC, abstractmethod
from datetime import timedelta
from ipaddress import AddressValueError, IPv4Address, IPv6Address
from types import TracebackType
from typing import TYPE_CHECKING, Final, Self
from urllib.parse import urlparse

from nostr_sdk import (
    Client,
    ClientBuilder,
    ClientOptions,
    Connection,
    ConnectionMode,
    ConnectionTarget,
    Filter,
    HandleNotification,
    Kind,
    NostrSdkError,
    NostrSigner,
    PublicKey,
    RelayMessageEnum,
    RelayUrl,
    uniffi_set_event_loop,
)

from dmcourier.core.exceptions import NotificationChannelError
from dmcourier.models.candidates import RelayCandidateSet
from dmcourier.models.constants import NetworkType
from dmcourier.models.notification import Ack, Other, RelayResponse
from dmcourier.models.preference import PreferenceEvent
from dmcourier.models.relay import RelayAddress


if TYPE_CHECKING:
    from nostr_sdk import Event as NostrEvent
    from nostr_sdk import Keys, RelayMessage


DEFAULT_CONNECT_TIMEOUT: Final[float] = 5.0
DEFAULT_CHANNEL_CAPACITY: Final[int] = 1024


logger = logging.getLogger("dmcourier.utils.protocol")


# ---------------------------------------------------------------------------
# Notification channel
# ---------------------------------------------------------------------------


_CLOSED = object()


class NotificationChannel:
    """Bounded, closable stream of relay responses.

    Producers call [push()][dmcourier.utils.protocol.NotificationChannel.push];
    one consumer awaits [recv()][dmcourier.utils.protocol.NotificationChannel.recv].
    A producer that outruns the consumer by more than ``capacity`` items
    closes the channel ("lagged"), since responses are no longer complete.

    ``recv()`` keeps returning queued responses after ``close()`` and raises
    [NotificationChannelError][dmcourier.core.exceptions.NotificationChannelError]
    once the queue is drained. Callers bound the wait themselves (e.g. with
    ``asyncio.timeout``); a timeout leaves the channel usable.
    """

    __slots__ = ("_capacity", "_close_reason", "_queue")

    def __init__(self, capacity: int = DEFAULT_CHANNEL_CAPACITY) -> None:
        self._capacity = capacity
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._close_reason: str | None = None

    @property
    def closed(self) -> bool:
        return self._close_reason is not None

    def push(self, response: RelayResponse) -> None:
        """Enqueue *response*. Dropped silently once the channel is closed."""
        if self.closed:
            return
        if self._queue.qsize() >= self._capacity:
            self.close("notification channel lagged")
            return
        self._queue.put_nowait(response)

    def close(self, reason: str = "notification channel closed") -> None:
        """Close the channel. Idempotent; the first reason wins."""
        if self.closed:
            return
        self._close_reason = reason
        self._queue.put_nowait(_CLOSED)

    async def recv(self) -> RelayResponse:
        """Wait for the next response.

        Raises:
            NotificationChannelError: If the channel is closed and drained.
        """
        if self.closed and self._queue.empty():
            raise NotificationChannelError(self._close_reason)
        item = await self._queue.get()
        if item is _CLOSED:
            raise NotificationChannelError(self._close_reason)
        return item  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


class RelaySession(ABC):
    """A set of connected relays operated as one unit.

    Sessions are async context managers; leaving the context closes them.
    """

    @property
    @abstractmethod
    def relays(self) -> RelayCandidateSet:
        """Relays that were successfully added to the session."""

    @abstractmethod
    async def fetch_events(
        self,
        kind: int,
        authors: list[str],
        *,
        limit: int,
        timeout: float,  # noqa: ASYNC109
    ) -> list[PreferenceEvent]:
        """Query every relay of the session and return matching signed events.

        Raises:
            OSError, TimeoutError, NostrSdkError: On transport failure.
        """

    @abstractmethod
    async def send_private_msg(self, receiver: PublicKey, message: str) -> str:
        """Publish a gift-wrapped private message to every relay of the session.

        Returns:
            The id (hex) of the published event, shared by all relays.
        """

    @abstractmethod
    def notifications(self) -> NotificationChannel:
        """Return the channel carrying every relay response of this session.

        Subscribe before publishing, or answers may be missed.
        """

    @abstractmethod
    async def close(self) -> None:
        """Disconnect every relay. Never raises."""

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


class RelayNetwork(ABC):
    """Factory of [RelaySession][dmcourier.utils.protocol.RelaySession] objects."""

    @abstractmethod
    async def open_session(
        self,
        relays: RelayCandidateSet,
        *,
        keys: Keys | None = None,
    ) -> RelaySession:
        """Add and connect *relays* best-effort and return the session.

        Args:
            relays: Relays to add, in priority order.
            keys: Signing keys; ``None`` opens a read-only session.
        """

    def can_route(self, relay: RelayAddress) -> bool:
        """Whether sessions of this network can connect to *relay* at all."""
        return True


# ---------------------------------------------------------------------------
# nostr-sdk implementation
# ---------------------------------------------------------------------------


async def create_client(keys: Keys | None = None, proxy_url: str | None = None) -> Client:
    """Create a Nostr client with optional signing keys and SOCKS5 proxy.

    With a ``proxy_url``, onion relays are reached through the proxy via
    ``ConnectionMode.PROXY``; clearnet relays keep direct connections.

    Args:
        keys: Optional signing keys (``None`` = read-only client).
        proxy_url: SOCKS5 proxy URL (e.g., ``socks5://127.0.0.1:9050``).

    Returns:
        Configured ``Client`` instance (call ``add_relay()`` before use).

    Note:
        nostr-sdk requires a numeric proxy address, so a hostname is resolved
        with ``asyncio.to_thread(socket.gethostbyname)``.
    """
    builder = ClientBuilder()

    if keys is not None:
        builder = builder.signer(NostrSigner.keys(keys))

    if proxy_url is not None:
        parsed = urlparse(proxy_url)
        proxy_host = parsed.hostname or "127.0.0.1"
        proxy_port = parsed.port or 9050

        bare_host = proxy_host.strip("[]")
        try:
            IPv4Address(bare_host)
        except (AddressValueError, ValueError):
            try:
                IPv6Address(bare_host)
                proxy_host = bare_host
            except (AddressValueError, ValueError):
                proxy_host = await asyncio.to_thread(socket.gethostbyname, proxy_host)

        proxy_mode = ConnectionMode.PROXY(proxy_host, proxy_port)
        conn = Connection().mode(proxy_mode).target(ConnectionTarget.ONION)
        builder = builder.opts(ClientOptions().connection(conn))

    return builder.build()


def _to_preference_event(event: NostrEvent) -> PreferenceEvent:
    return PreferenceEvent(
        id=event.id().to_hex(),
        author=event.author().to_hex(),
        created_at=event.created_at().as_secs(),
        tags=tuple(tuple(tag.as_vec()) for tag in event.tags().to_vec()),
        kind=event.kind().as_u16(),
    )


def relay_message_to_response(relay_url: str, message: RelayMessage) -> RelayResponse:
    """Map a raw relay message to a [RelayResponse][dmcourier.models.notification.RelayResponse]."""
    relay = RelayAddress.parse(relay_url)
    variant = message.as_enum()
    if relay is not None and isinstance(variant, RelayMessageEnum.OK):
        return Ack(
            relay=relay,
            message_id=variant.event_id.to_hex(),
            accepted=variant.status,
            reason=variant.message,
        )
    return Other(relay=relay, description=type(variant).__name__)


class _ChannelHandler(HandleNotification):
    """Forwards nostr-sdk pool notifications into a NotificationChannel."""

    def __init__(self, channel: NotificationChannel) -> None:
        self._channel = channel

    async def handle(self, relay_url: RelayUrl, subscription_id: str, event: NostrEvent) -> None:
        self._channel.push(
            Other(relay=RelayAddress.parse(str(relay_url)), description="event")
        )

    async def handle_msg(self, relay_url: RelayUrl, msg: RelayMessage) -> None:
        self._channel.push(relay_message_to_response(str(relay_url), msg))


class NostrSession(RelaySession):
    """[RelaySession][dmcourier.utils.protocol.RelaySession] backed by a ``nostr_sdk.Client``."""

    def __init__(self, client: Client, relays: RelayCandidateSet) -> None:
        self._client = client
        self._relays = relays
        self._channel: NotificationChannel | None = None
        self._notify_task: asyncio.Task[None] | None = None

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
        event_filter = (
            Filter()
            .kind(Kind(kind))
            .authors([PublicKey.parse(author) for author in authors])
            .limit(limit)
        )
        events = await self._client.fetch_events(event_filter, timedelta(seconds=timeout))

        result: list[PreferenceEvent] = []
        for evt in events.to_vec():
            try:
                if evt.verify():
                    result.append(_to_preference_event(evt))
            except (ValueError, TypeError, OverflowError, NostrSdkError):
                continue
        return result

    async def send_private_msg(self, receiver: PublicKey, message: str) -> str:
        urls = [RelayUrl.parse(relay.url) for relay in self._relays]
        output = await self._client.send_private_msg_to(urls, receiver, message, [])
        return output.id.to_hex()

    def notifications(self) -> NotificationChannel:
        if self._channel is not None:
            return self._channel

        channel = NotificationChannel()
        # Required for the UniFFI callbacks of HandleNotification
        uniffi_set_event_loop(asyncio.get_running_loop())
        task = asyncio.create_task(self._client.handle_notifications(_ChannelHandler(channel)))

        def _on_done(done: asyncio.Task[None]) -> None:
            if done.cancelled():
                channel.close("notification loop cancelled")
            elif (exc := done.exception()) is not None:
                channel.close(f"notification loop failed: {exc}")
            else:
                channel.close("notification loop ended")

        task.add_done_callback(_on_done)
        self._channel = channel
        self._notify_task = task
        return channel

    async def close(self) -> None:
        if self._notify_task is not None:
            self._notify_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await self._notify_task
            self._notify_task = None
        # nostr-sdk Rust FFI can raise arbitrary exception types during shutdown.
        with contextlib.suppress(Exception):
            await self._client.shutdown()


class NostrRelayNetwork(RelayNetwork):
    """[RelayNetwork][dmcourier.utils.protocol.RelayNetwork] on ``nostr-sdk``.

    Args:
        proxy_url: SOCKS5 proxy used for onion relays, or ``None``.
        connect_timeout: Seconds to wait for relays to connect when a
            session is opened.
    """

    def __init__(
        self,
        proxy_url: str | None = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self._proxy_url = proxy_url
        self._connect_timeout = connect_timeout

    def can_route(self, relay: RelayAddress) -> bool:
        """Direct connections for non-overlay relays; the proxy only carries onion relays."""
        if not relay.is_overlay:
            return True
        return relay.network == NetworkType.TOR and self._proxy_url is not None

    async def open_session(
        self,
        relays: RelayCandidateSet,
        *,
        keys: Keys | None = None,
    ) -> NostrSession:
        client = await create_client(keys, self._proxy_url)

        try:
            added = await self._connect(client, relays)
        except BaseException:
            await client.shutdown()
            raise

        logger.debug("session_opened relays=%s signer=%s", added.urls, keys is not None)
        return NostrSession(client, added)

    async def _connect(self, client: Client, relays: RelayCandidateSet) -> RelayCandidateSet:
        """Add every relay best-effort, connect, and return the added ones."""
        added = RelayCandidateSet()
        for relay in relays:
            try:
                await client.add_relay(RelayUrl.parse(relay.url))
            except (NostrSdkError, ValueError) as e:
                logger.warning("relay_add_failed relay=%s error=%s", relay.url, e)
                continue
            added.add(relay)

        if added:
            output = await client.try_connect(timedelta(seconds=self._connect_timeout))
            for url, error in output.failed.items():
                logger.warning("relay_connect_failed relay=%s error=%s", url, error)
        return added
