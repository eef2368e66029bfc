"""Delivery coordinator service.

Publishes one gift-wrapped direct message to every live relay and collects
the per-relay answers under a single global deadline:

1. Subscribe to the session's notification channel.
2. Publish once; the returned event id identifies the message on every relay.
3. Mark every live relay ``WAITING`` and start the deadline.
4. Consume responses one at a time until nothing is waiting or the deadline
   passes. Only an ``OK`` for the published id from a relay that is still
   waiting changes state; anything else is ignored.
5. Expire the relays still waiting to ``TIMED_OUT`` and report each one.

A receive timeout and a broken channel are handled differently on purpose.
A timeout only means "no message yet" and the loop condition decides what
happens next. A broken channel means no answer can ever arrive: the loop
stops at once, the waiting relays stay ``WAITING`` and the outcome carries
the channel error so callers can tell it apart from plain silence.

See Also:
    [DeliveryConfig][dmcourier.services.delivery.DeliveryConfig]: Deadline.
    [DeliveryOutcome][dmcourier.models.delivery.DeliveryOutcome]: The report.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, ClassVar

from nostr_sdk import NostrSdkError

from dmcourier.core.base_service import BaseService
from dmcourier.core.exceptions import (
    NoLiveRelaysError,
    NotificationChannelError,
    PublishingError,
)
from dmcourier.models.constants import ServiceName
from dmcourier.models.delivery import DeliveryOutcome, PendingAck
from dmcourier.models.notification import Ack, Other

from .configs import DeliveryConfig


if TYPE_CHECKING:
    from nostr_sdk import Keys, PublicKey

    from dmcourier.core.logger import LogConfig
    from dmcourier.models.candidates import RelayCandidateSet
    from dmcourier.models.relay import RelayAddress
    from dmcourier.utils.protocol import NotificationChannel, RelayNetwork, RelaySession


class DeliveryCoordinator(BaseService[DeliveryConfig]):
    """Publishes a direct message and aggregates per-relay acknowledgements.

    Args:
        network: Relay network used to open the sending session.
        keys: Sender keys; they sign the seal and the gift wrap.
        config: Deadline configuration.
        log_config: Logging settings.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.DELIVERY
    CONFIG_CLASS: ClassVar[type[DeliveryConfig]] = DeliveryConfig

    def __init__(
        self,
        network: RelayNetwork,
        keys: Keys,
        config: DeliveryConfig | None = None,
        *,
        log_config: LogConfig | None = None,
    ) -> None:
        super().__init__(config=config, log_config=log_config)
        self._network = network
        self._keys = keys

    async def deliver(
        self, live: RelayCandidateSet, receiver: PublicKey, message: str
    ) -> DeliveryOutcome:
        """Publish *message* to *live* and wait for the relays to answer.

        Args:
            live: Relays that passed the liveness probe, in priority order.
            receiver: Public key of the receiver.
            message: Plain-text message body.

        Returns:
            The per-relay [DeliveryOutcome][dmcourier.models.delivery.DeliveryOutcome].

        Raises:
            NoLiveRelaysError: If *live* is empty.
            PublishingError: If the sending session cannot be opened or the
                message cannot be published.
        """
        if not live:
            raise NoLiveRelaysError([])

        try:
            session = await self._network.open_session(live, keys=self._keys)
        except (OSError, TimeoutError, NostrSdkError) as e:
            raise PublishingError(f"cannot open sending session: {e}") from e

        async with session:
            return await self._publish_and_confirm(session, live, receiver, message)

    async def _publish_and_confirm(
        self,
        session: RelaySession,
        live: RelayCandidateSet,
        receiver: PublicKey,
        message: str,
    ) -> DeliveryOutcome:
        if not session.relays:
            raise PublishingError("no live relay could be added to the sending session")

        # Subscribe first: relays may answer before the publish call returns
        channel = session.notifications()

        try:
            message_id = await session.send_private_msg(receiver, message)
        except (OSError, TimeoutError, NostrSdkError) as e:
            raise PublishingError(f"failed to publish message: {e}") from e

        self._logger.info("message_published", id=message_id, relays=len(live))

        pending = {relay: PendingAck() for relay in live}
        channel_error = await self._collect(channel, message_id, pending)

        if channel_error is None:
            for relay, ack in pending.items():
                if not ack.is_terminal:
                    pending[relay] = ack.expire()

        outcome = DeliveryOutcome(message_id, pending, channel_error=channel_error)
        for relay in outcome.unanswered:
            self._logger.warning("no_response", relay=relay.url, id=message_id)

        self._logger.info(
            "delivery_completed",
            id=message_id,
            accepted=len(outcome.accepted),
            rejected=len(outcome.rejected),
            unanswered=len(outcome.unanswered),
        )
        return outcome

    async def _collect(
        self,
        channel: NotificationChannel,
        message_id: str,
        pending: dict[RelayAddress, PendingAck],
    ) -> str | None:
        """Run the aggregation loop; return the channel error if it broke."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._config.deadline
        waiting = set(pending)

        while waiting and (remaining := deadline - loop.time()) > 0:
            try:
                async with asyncio.timeout(remaining):
                    response = await channel.recv()
            except TimeoutError:
                self._logger.debug("ack_wait_timeout", id=message_id, waiting=len(waiting))
                continue
            except NotificationChannelError as e:
                self._logger.error(
                    "notification_channel_failed", id=message_id, error=str(e), waiting=len(waiting)
                )
                return str(e)

            match response:
                case Ack(relay=relay, message_id=ack_id, accepted=accepted, reason=reason) if (
                    ack_id == message_id and relay in waiting
                ):
                    pending[relay] = pending[relay].resolve(accepted=accepted, reason=reason)
                    waiting.discard(relay)
                    if accepted:
                        self._logger.info("relay_accepted", relay=relay.url, id=message_id)
                    else:
                        self._logger.warning(
                            "relay_rejected", relay=relay.url, id=message_id, reason=reason
                        )
                case Ack(relay=relay, message_id=ack_id):
                    self._logger.debug("ack_ignored", relay=relay.url, id=ack_id)
                case Other(relay=relay, description=description):
                    self._logger.debug(
                        "notification_ignored",
                        relay=relay.url if relay is not None else None,
                        kind=description,
                    )

        return None
