"""Preference discovery service.

Finds the relays an identity wants direct messages delivered to by asking a
set of seed relays for its most recent kind 10050 DM relay list. When no
usable list is found, the seed relays themselves are returned: they are
where the identity is known to be reachable, not a declared preference.

Every failure on the way (a seed relay that cannot be added, a query that
times out, a malformed relay tag) is logged and absorbed into the fallback.
Only an empty seed set is an error, raised before any network activity.

See Also:
    [DiscoveryConfig][dmcourier.services.discovery.DiscoveryConfig]: Query
        timeout.
    [PreferencesFound][dmcourier.models.preference.PreferencesFound],
    [SeedFallback][dmcourier.models.preference.SeedFallback]: The two
        possible results.

Examples:
    ```python
    discovery = PreferenceDiscovery(NostrRelayNetwork())
    result = await discovery.discover(pubkey_hex, seeds)
    match result:
        case PreferencesFound(relays=relays):
            ...
        case SeedFallback(relays=relays):
            ...
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from nostr_sdk import NostrSdkError

from dmcourier.core.base_service import BaseService
from dmcourier.core.exceptions import ConfigurationError
from dmcourier.models.constants import EventKind, ServiceName
from dmcourier.models.preference import (
    DiscoveryResult,
    PreferenceEvent,
    PreferencesFound,
    SeedFallback,
)

from .configs import DiscoveryConfig
from .utils import extract_relays, select_newest


if TYPE_CHECKING:
    from dmcourier.core.logger import LogConfig
    from dmcourier.models.candidates import RelayCandidateSet
    from dmcourier.utils.protocol import RelayNetwork


class PreferenceDiscovery(BaseService[DiscoveryConfig]):
    """Discovers an identity's DM relays from a seed relay set."""

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.DISCOVERY
    CONFIG_CLASS: ClassVar[type[DiscoveryConfig]] = DiscoveryConfig

    def __init__(
        self,
        network: RelayNetwork,
        config: DiscoveryConfig | None = None,
        *,
        log_config: LogConfig | None = None,
    ) -> None:
        super().__init__(config=config, log_config=log_config)
        self._network = network

    async def discover(self, author: str, seeds: RelayCandidateSet) -> DiscoveryResult:
        """Return the DM relays declared by *author*, or the seeds as fallback.

        Args:
            author: Public key (hex) of the identity.
            seeds: Relays to query. Must not be empty.

        Returns:
            ``PreferencesFound`` with the declared relays in tag order, or
            ``SeedFallback`` with a copy of *seeds*.

        Raises:
            ConfigurationError: If *seeds* is empty.
        """
        if not seeds:
            raise ConfigurationError(f"no seed relays to discover DM relays of {author}")

        self._logger.info("discovery_started", author=author, seeds=",".join(seeds.urls))

        event = select_newest(await self._fetch(author, seeds), author)
        if event is not None:
            rejected: list[str] = []
            relays = extract_relays(event, rejected=rejected)
            for raw in rejected:
                self._logger.warning("relay_tag_invalid", author=author, value=raw)
            if relays:
                self._logger.info(
                    "dm_relays_found", author=author, event=event.id, relays=",".join(relays.urls)
                )
                return PreferencesFound(relays=relays, event=event)
            self._logger.info("dm_relay_list_empty", author=author, event=event.id)

        self._logger.info("dm_relays_fallback", author=author, relays=",".join(seeds.urls))
        return SeedFallback(relays=seeds.copy())

    async def _fetch(self, author: str, seeds: RelayCandidateSet) -> list[PreferenceEvent]:
        """Query the seed relays; transport failures yield an empty result."""
        timeout = self._config.timeout
        try:
            async with await self._network.open_session(seeds) as session:
                if not session.relays:
                    self._logger.warning("no_seed_relay_usable", author=author)
                    return []
                events = await session.fetch_events(
                    EventKind.DM_RELAY_LIST, [author], limit=1, timeout=timeout
                )
        except (OSError, TimeoutError, NostrSdkError) as e:
            self._logger.warning("discovery_query_failed", author=author, error=str(e))
            return []

        self._logger.debug("discovery_query_done", author=author, events=len(events))
        return events
