"""Unit tests for services.courier service module."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from nostr_sdk import Nip19Profile, RelayUrl

from dmcourier.core.exceptions import ConfigurationError, NoLiveRelaysError
from dmcourier.models import Ack, AckState, PendingAck, RelayAddress, RelayCandidateSet
from dmcourier.services.courier import Courier, CourierConfig, CourierReport
from dmcourier.services.delivery import DeliveryConfig


@pytest.fixture
def config() -> CourierConfig:
    return CourierConfig(delivery=DeliveryConfig(deadline=0.5))


@pytest.fixture
def courier(fake_network, sender_keys, config) -> Courier:
    return Courier(fake_network, sender_keys, config)


@pytest.fixture
def all_live(courier):
    """Make every candidate pass the liveness probe."""

    async def passthrough(candidates):
        return candidates.copy()

    with patch.object(courier._prober, "probe", side_effect=passthrough) as probe:
        yield probe


@pytest.fixture
async def listeners():
    """Two local TCP listeners; yields their relay URLs."""

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        writer.close()

    servers = [await asyncio.start_server(handle, "127.0.0.1", 0) for _ in range(2)]
    yield [f"ws://127.0.0.1:{s.sockets[0].getsockname()[1]}" for s in servers]
    for server in servers:
        server.close()
        await server.wait_closed()


def nprofile(keys, *relays: str) -> str:
    return Nip19Profile(keys.public_key(), [RelayUrl.parse(url) for url in relays]).to_bech32()


# ============================================================================
# Initialization Tests
# ============================================================================


class TestCourierInit:
    """Tests for Courier initialization."""

    def test_init_with_defaults(self, fake_network, sender_keys) -> None:
        courier = Courier(fake_network, sender_keys)
        assert courier.SERVICE_NAME == "courier"
        assert courier.config.delivery.deadline == 5.0
        assert courier.config.discovery.timeout == 5.0

    def test_stage_configs_threaded(self, courier) -> None:
        assert courier._delivery.config.deadline == 0.5
        assert courier._prober.config is courier.config.prober

    def test_log_config_defaults_to_config_logging(self, fake_network, sender_keys) -> None:
        config = CourierConfig.model_validate({"logging": {"json_output": True}})
        courier = Courier(fake_network, sender_keys, config)
        assert courier._logger._json_output is True
        assert courier._discovery._logger._json_output is True

    def test_from_dict(self, fake_network, sender_keys) -> None:
        courier = Courier.from_dict(
            {"delivery": {"deadline": 2.0}, "prober": {"max_tasks": 4}},
            network=fake_network,
            keys=sender_keys,
        )
        assert courier.config.delivery.deadline == 2.0
        assert courier.config.prober.max_tasks == 4


# ============================================================================
# Relay Selection Tests
# ============================================================================


class TestRelaySelection:
    """Tests for receiver and cc relay selection."""

    async def test_raw_identity_requires_via(self, courier, receiver_keys) -> None:
        with pytest.raises(ConfigurationError, match="--via"):
            await courier.run(receiver_keys.public_key().to_hex(), "hi")

    async def test_invalid_receiver(self, courier) -> None:
        with pytest.raises(ConfigurationError, match="nprofile"):
            await courier.run("alice", "hi", via=["wss://r1.example.com"])

    async def test_invalid_via(self, courier, receiver_keys) -> None:
        with pytest.raises(ConfigurationError, match="--via"):
            await courier.run(receiver_keys.public_key().to_bech32(), "hi", via=["relay.example.com"])

    async def test_invalid_cc(self, courier, receiver_keys) -> None:
        with pytest.raises(ConfigurationError, match="--cc"):
            await courier.run(
                receiver_keys.public_key().to_bech32(),
                "hi",
                via=["wss://r1.example.com"],
                cc=["http://r2.example.com"],
            )

    async def test_raw_identity_uses_via(self, courier, fake_network, receiver_keys) -> None:
        report = await courier.run(
            receiver_keys.public_key().to_bech32(),
            "hi",
            via=["wss://r1.example.com", "wss://r2.example.com", "wss://r1.example.com/"],
            dry_run=True,
        )
        assert report.selected.urls == ["wss://r1.example.com", "wss://r2.example.com"]
        assert fake_network.fetch_calls == []

    async def test_profile_preferences_found(
        self, courier, fake_network, receiver_keys, make_event
    ) -> None:
        receiver_hex = receiver_keys.public_key().to_hex()
        fake_network.events[receiver_hex] = [
            make_event(receiver_hex, ["wss://inbox.example.com", "wss://inbox2.example.com"])
        ]

        report = await courier.run(
            nprofile(receiver_keys, "wss://seed.example.com"), "hi", dry_run=True
        )

        assert fake_network.fetch_calls[0]["relays"] == ["wss://seed.example.com"]
        assert report.selected.urls == ["wss://inbox.example.com", "wss://inbox2.example.com"]

    async def test_profile_via_added_as_seed(self, courier, fake_network, receiver_keys) -> None:
        report = await courier.run(
            nprofile(receiver_keys, "wss://seed.example.com"),
            "hi",
            via=["wss://hint.example.com", "wss://seed.example.com"],
            dry_run=True,
        )
        assert fake_network.fetch_calls[0]["relays"] == [
            "wss://seed.example.com",
            "wss://hint.example.com",
        ]
        assert report.selected.urls == ["wss://seed.example.com", "wss://hint.example.com"]

    async def test_cc_relays_merged_after_receiver_set(
        self, courier, fake_network, sender_keys, receiver_keys, make_event
    ) -> None:
        sender_hex = sender_keys.public_key().to_hex()
        fake_network.events[sender_hex] = [
            make_event(sender_hex, ["wss://r2.example.com", "wss://mine.example.com"])
        ]

        report = await courier.run(
            receiver_keys.public_key().to_hex(),
            "hi",
            via=["wss://r1.example.com", "wss://r2.example.com"],
            cc=["wss://cc.example.com"],
            dry_run=True,
        )

        assert fake_network.fetch_calls == [
            {
                "relays": ["wss://cc.example.com"],
                "kind": 10050,
                "authors": [sender_hex],
                "limit": 1,
            }
        ]
        assert report.selected.urls == [
            "wss://r1.example.com",
            "wss://r2.example.com",
            "wss://mine.example.com",
        ]

    async def test_cc_without_preferences_merges_cc_seeds(
        self, courier, receiver_keys
    ) -> None:
        report = await courier.run(
            receiver_keys.public_key().to_hex(),
            "hi",
            via=["wss://r1.example.com"],
            cc=["wss://cc.example.com", "wss://r1.example.com"],
            dry_run=True,
        )
        assert report.selected.urls == ["wss://r1.example.com", "wss://cc.example.com"]


# ============================================================================
# Run Tests
# ============================================================================


class TestRun:
    """Tests for the full courier run."""

    async def test_dry_run_stops_before_sending(self, courier, fake_network, receiver_keys) -> None:
        with patch.object(courier._prober, "probe", new_callable=AsyncMock) as probe:
            report = await courier.run(
                receiver_keys.public_key().to_hex(), "hi", via=["wss://r1.example.com"], dry_run=True
            )

        assert isinstance(report, CourierReport)
        assert report.is_dry_run
        assert report.outcome is None
        assert not report.live
        probe.assert_not_awaited()
        assert fake_network.sent == []

    async def test_no_live_relay(self, courier, fake_network, receiver_keys) -> None:
        with patch.object(
            courier._prober, "probe", new_callable=AsyncMock, return_value=RelayCandidateSet()
        ):
            with pytest.raises(NoLiveRelaysError) as exc_info:
                await courier.run(
                    receiver_keys.public_key().to_hex(), "hi", via=["wss://r1.example.com"]
                )

        assert exc_info.value.candidates == ["wss://r1.example.com"]
        assert fake_network.sent == []

    async def test_only_live_relays_receive_message(
        self, courier, fake_network, receiver_keys
    ) -> None:
        r2 = RelayAddress("wss://r2.example.com")
        fake_network.responses = [(0.01, Ack(r2, fake_network.message_id, True))]

        with patch.object(
            courier._prober, "probe", new_callable=AsyncMock, return_value=RelayCandidateSet([r2])
        ):
            report = await courier.run(
                receiver_keys.public_key().to_hex(),
                "hi",
                via=["wss://r1.example.com", "wss://r2.example.com"],
            )

        assert fake_network.sent[0]["relays"] == ["wss://r2.example.com"]
        assert report.selected.urls == ["wss://r1.example.com", "wss://r2.example.com"]
        assert dict(report.outcome.results) == {r2: PendingAck(AckState.ACCEPTED)}

    async def test_unroutable_relays_never_probed(
        self, courier, fake_network, receiver_keys, all_live
    ) -> None:
        fake_network.unroutable = {"ws://abc.i2p"}
        fake_network.responses = [
            (0.01, Ack(RelayAddress("wss://r1.example.com"), fake_network.message_id, True))
        ]

        report = await courier.run(
            receiver_keys.public_key().to_hex(),
            "hi",
            via=["ws://abc.i2p", "wss://r1.example.com"],
        )

        assert all_live.await_args.args[0].urls == ["wss://r1.example.com"]
        assert fake_network.sent[0]["relays"] == ["wss://r1.example.com"]
        assert report.selected.urls == ["ws://abc.i2p", "wss://r1.example.com"]

    async def test_only_unroutable_relays(
        self, courier, fake_network, receiver_keys, all_live
    ) -> None:
        fake_network.unroutable = {"ws://abc.loki"}

        with pytest.raises(NoLiveRelaysError):
            await courier.run(receiver_keys.public_key().to_hex(), "hi", via=["ws://abc.loki"])

        assert fake_network.sent == []

    async def test_message_and_receiver_passed(
        self, courier, fake_network, receiver_keys, all_live
    ) -> None:
        fake_network.responses = [
            (0.01, Ack(RelayAddress("wss://r1.example.com"), fake_network.message_id, True))
        ]
        await courier.run(
            receiver_keys.public_key().to_hex(), "the body\n", via=["wss://r1.example.com"]
        )

        sent = fake_network.sent[0]
        assert sent["message"] == "the body\n"
        assert sent["receiver"].to_hex() == receiver_keys.public_key().to_hex()

    async def test_total_failure_reported(
        self, courier, fake_network, receiver_keys, all_live
    ) -> None:
        fake_network.channel_error_after = 0.01

        report = await courier.run(
            receiver_keys.public_key().to_hex(), "hi", via=["wss://r1.example.com"]
        )

        assert report.is_total_failure


# ============================================================================
# End-to-End Scenarios
# ============================================================================


class TestScenarios:
    """Discovery, probing and delivery against local listeners."""

    async def test_seed_fallback_probe_and_accept(
        self, courier, fake_network, receiver_keys, listeners
    ) -> None:
        r1 = RelayAddress(listeners[0])
        fake_network.responses = [(0.1, Ack(r1, fake_network.message_id, True))]

        report = await courier.run(nprofile(receiver_keys, r1.url), "hi")

        assert report.selected.urls == [r1.url]
        assert report.live.urls == [r1.url]
        assert dict(report.outcome.results) == {r1: PendingAck(AckState.ACCEPTED)}

    async def test_reject_and_timeout(
        self, courier, fake_network, receiver_keys, listeners
    ) -> None:
        r1, r2 = (RelayAddress(url) for url in listeners)
        fake_network.responses = [(0.05, Ack(r1, fake_network.message_id, False, "rate-limited"))]

        report = await courier.run(
            receiver_keys.public_key().to_hex(), "hi", via=[r1.url, r2.url]
        )

        assert dict(report.outcome.results) == {
            r1: PendingAck(AckState.REJECTED, "rate-limited"),
            r2: PendingAck(AckState.TIMED_OUT),
        }
        assert not report.is_total_failure
