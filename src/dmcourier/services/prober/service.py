"""Liveness prober service.

Filters a candidate set down to the relays whose transport endpoint accepts
a TCP connection within a short per-network timeout, so that protocol round
trips are not spent on dead servers. Probes run concurrently (bounded by
``max_tasks``); the timeout of a probe only starts once it holds a slot, so
probes never eat into each other's budget.

A relay that fails is dropped with a warning and never retried. If every
relay fails the result is empty; the caller decides what that means.

See Also:
    [ProberConfig][dmcourier.services.prober.ProberConfig]: Concurrency and
        per-network settings.
    [probe_tcp][dmcourier.utils.transport.probe_tcp],
    [probe_via_proxy][dmcourier.utils.transport.probe_via_proxy]: The probes.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, ClassVar

from dmcourier.core.base_service import BaseService
from dmcourier.models.candidates import RelayCandidateSet
from dmcourier.models.constants import ServiceName
from dmcourier.utils.transport import probe_tcp, probe_via_proxy

from .configs import ProberConfig


if TYPE_CHECKING:
    from dmcourier.core.logger import LogConfig
    from dmcourier.models.relay import RelayAddress


class LivenessProber(BaseService[ProberConfig]):
    """Keeps only the candidates that accept a TCP connection."""

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.PROBER
    CONFIG_CLASS: ClassVar[type[ProberConfig]] = ProberConfig

    def __init__(
        self,
        config: ProberConfig | None = None,
        *,
        log_config: LogConfig | None = None,
    ) -> None:
        super().__init__(config=config, log_config=log_config)

    async def probe(self, candidates: RelayCandidateSet) -> RelayCandidateSet:
        """Return the reachable subset of *candidates*, in candidate order."""
        relays = list(candidates)
        if not relays:
            return RelayCandidateSet()

        semaphore = asyncio.Semaphore(self._config.max_tasks)
        results = await asyncio.gather(*(self._probe_one(relay, semaphore) for relay in relays))

        live = RelayCandidateSet(relay for relay, ok in zip(relays, results, strict=True) if ok)
        self._logger.info(
            "probe_completed",
            candidates=len(relays),
            live=len(live),
            relays=",".join(live.urls),
        )
        return live

    async def _probe_one(self, relay: RelayAddress, semaphore: asyncio.Semaphore) -> bool:
        networks = self._config.networks

        if not networks.is_enabled(relay.network):
            self._logger.warning("relay_dropped", relay=relay.url, reason=f"{relay.network} disabled")
            return False

        proxy_url = networks.get_proxy_url(relay.network)
        if relay.is_overlay and proxy_url is None:
            self._logger.warning("relay_dropped", relay=relay.url, reason="overlay requires proxy")
            return False

        timeout = networks.get_timeout(relay.network)
        async with semaphore:
            try:
                if proxy_url is not None:
                    await probe_via_proxy(proxy_url, relay.host, relay.effective_port, timeout)
                else:
                    await probe_tcp(relay.host, relay.effective_port, timeout)
            except TimeoutError:
                self._logger.warning("relay_unreachable", relay=relay.url, error="timeout")
                return False
            except OSError as e:
                self._logger.warning("relay_unreachable", relay=relay.url, error=str(e))
                return False

        self._logger.debug("relay_reachable", relay=relay.url)
        return True
