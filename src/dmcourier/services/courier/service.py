"""Courier service: one discovery, send and confirm cycle.

Sequences the pipeline stages for a single direct message:

1. Resolve the receiver address (``nprofile``, ``npub`` or hex).
2. Build the receiver relay set. For an ``nprofile`` the profile relays
   (plus ``via`` hints) seed a
   [PreferenceDiscovery][dmcourier.services.discovery.PreferenceDiscovery]
   run; for a raw identity the ``via`` hints are the receiver set.
3. With ``cc`` relays, discover the sender's own DM relays from them and
   append those not already in the receiver set, so the sender keeps a copy.
4. Stop here on a dry run.
5. Drop relays the network cannot route (overlays without a matching
   proxy), then keep the relays that pass the
   [LivenessProber][dmcourier.services.prober.LivenessProber].
6. Publish and confirm with the
   [DeliveryCoordinator][dmcourier.services.delivery.DeliveryCoordinator].

See Also:
    [CourierConfig][dmcourier.services.courier.CourierConfig]: Configuration
        of every stage.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from dmcourier.core.base_service import BaseService
from dmcourier.core.exceptions import ConfigurationError, NoLiveRelaysError
from dmcourier.models.candidates import RelayCandidateSet
from dmcourier.models.constants import ServiceName
from dmcourier.services.delivery import DeliveryCoordinator
from dmcourier.services.discovery import PreferenceDiscovery
from dmcourier.services.prober import LivenessProber
from dmcourier.utils.keys import Receiver, parse_receiver

from .configs import CourierConfig


if TYPE_CHECKING:
    from nostr_sdk import Keys

    from dmcourier.core.logger import LogConfig
    from dmcourier.models.delivery import DeliveryOutcome
    from dmcourier.utils.protocol import RelayNetwork


@dataclass(frozen=True, slots=True)
class CourierReport:
    """Result of one courier run.

    Attributes:
        receiver: The resolved receiver.
        selected: Every candidate relay, before the liveness probe.
        live: Candidates that passed the probe (empty on a dry run).
        outcome: Delivery outcome, ``None`` on a dry run.
    """

    receiver: Receiver
    selected: RelayCandidateSet
    live: RelayCandidateSet
    outcome: DeliveryOutcome | None = None

    @property
    def is_dry_run(self) -> bool:
        return self.outcome is None

    @property
    def is_total_failure(self) -> bool:
        return self.outcome is not None and self.outcome.is_total_failure


class Courier(BaseService[CourierConfig]):
    """Delivers one direct message through discovered, live relays.

    Args:
        network: Relay network shared by discovery and delivery.
        keys: Sender keys.
        config: Pipeline configuration.
        log_config: Logging settings; defaults to ``config.logging``.

    Examples:
        ```python
        courier = Courier(NostrRelayNetwork(), keys)
        report = await courier.run("nprofile1...", "hello", cc=["wss://relay.example.com"])
        report.outcome.summary()
        ```
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.COURIER
    CONFIG_CLASS: ClassVar[type[CourierConfig]] = CourierConfig

    def __init__(
        self,
        network: RelayNetwork,
        keys: Keys,
        config: CourierConfig | None = None,
        *,
        log_config: LogConfig | None = None,
    ) -> None:
        config = config if config is not None else CourierConfig()
        super().__init__(
            config=config, log_config=log_config if log_config is not None else config.logging
        )
        self._network = network
        self._keys = keys
        self._discovery = PreferenceDiscovery(
            network, config.discovery, log_config=self._log_config
        )
        self._prober = LivenessProber(config.prober, log_config=self._log_config)
        self._delivery = DeliveryCoordinator(
            network, keys, config.delivery, log_config=self._log_config
        )

    async def run(
        self,
        to: str,
        message: str,
        *,
        via: Iterable[str] = (),
        cc: Iterable[str] = (),
        dry_run: bool = False,
    ) -> CourierReport:
        """Select relays for *to* and deliver *message* through them.

        Args:
            to: Receiver address (``nprofile``, ``npub`` or hex public key).
            message: Plain-text message body.
            via: Relay hints; required unless *to* is an ``nprofile``.
            cc: Seed relays for discovering the sender's own DM relays.
            dry_run: Select relays, then stop before connecting to send.

        Raises:
            ConfigurationError: If the receiver or a relay URL is invalid, or
                no relay can be derived for the receiver.
            NoLiveRelaysError: If no candidate passes the liveness probe.
            PublishingError: If the message cannot be published.
        """
        try:
            receiver = parse_receiver(to)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        hints = self._parse_relays(via, "via")
        cc_relays = self._parse_relays(cc, "cc")

        selected = await self.select_relays(receiver, hints, cc_relays)
        self._logger.info(
            "relays_selected", receiver=receiver.hex, relays=",".join(selected.urls)
        )

        if dry_run:
            self._logger.info("dry_run", relays=len(selected))
            return CourierReport(receiver, selected, RelayCandidateSet())

        live = await self._prober.probe(self._routable(selected))
        if not live:
            raise NoLiveRelaysError(selected.urls)

        outcome = await self._delivery.deliver(live, receiver.public_key, message)
        self._logger.info("courier_completed", id=outcome.message_id, live=len(live))
        return CourierReport(receiver, selected, live, outcome)

    async def select_relays(
        self,
        receiver: Receiver,
        hints: RelayCandidateSet,
        cc_relays: RelayCandidateSet,
    ) -> RelayCandidateSet:
        """Build the ordered candidate set: receiver relays, then sender relays."""
        if receiver.is_profile:
            seeds = receiver.relays.copy()
            seeds.merge(hints)
            if not seeds:
                raise ConfigurationError("nprofile carries no relay and no --via relay was given")
            candidates = (await self._discovery.discover(receiver.hex, seeds)).relays.copy()
        elif hints:
            candidates = hints.copy()
        else:
            raise ConfigurationError("--via is required when the receiver is not an nprofile")

        if cc_relays:
            sender = self._keys.public_key().to_hex()
            added = candidates.merge((await self._discovery.discover(sender, cc_relays)).relays)
            self._logger.info("sender_relays_merged", sender=sender, added=added)

        return candidates

    def _routable(self, candidates: RelayCandidateSet) -> RelayCandidateSet:
        """Drop candidates the relay network has no route to, before probing them."""
        routable = candidates.filter(self._network.can_route)
        for relay in candidates:
            if relay not in routable:
                self._logger.warning(
                    "relay_dropped", relay=relay.url, reason=f"no route to {relay.network} relay"
                )
        return routable

    def _parse_relays(self, urls: Iterable[str], option: str) -> RelayCandidateSet:
        rejected: list[str] = []
        relays = RelayCandidateSet.from_urls(urls, rejected=rejected)
        if rejected:
            raise ConfigurationError(f"invalid --{option} relay URL: {rejected[0]!r}")
        return relays
