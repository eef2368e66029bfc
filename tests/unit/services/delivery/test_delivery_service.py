"""Unit tests for services.delivery service module."""

import asyncio

import pytest
from pydantic import ValidationError

from dmcourier.core.exceptions import NoLiveRelaysError, PublishingError
from dmcourier.models import (
    Ack,
    AckState,
    Other,
    PendingAck,
    RelayAddress,
    RelayCandidateSet,
)
from dmcourier.services.delivery import DeliveryConfig, DeliveryCoordinator


R1 = RelayAddress("wss://r1.example.com")
R2 = RelayAddress("wss://r2.example.com")
R3 = RelayAddress("wss://r3.example.com")
STRANGER = RelayAddress("wss://stranger.example.com")

DEADLINE = 0.5


@pytest.fixture
def coordinator(fake_network, sender_keys) -> DeliveryCoordinator:
    return DeliveryCoordinator(fake_network, sender_keys, DeliveryConfig(deadline=DEADLINE))


@pytest.fixture
def receiver(receiver_keys):
    return receiver_keys.public_key()


def live(*relays: RelayAddress) -> RelayCandidateSet:
    return RelayCandidateSet(relays)


async def timed(coro):
    loop = asyncio.get_running_loop()
    start = loop.time()
    result = await coro
    return result, loop.time() - start


# ============================================================================
# Initialization Tests
# ============================================================================


class TestDeliveryCoordinatorInit:
    """Tests for DeliveryCoordinator initialization."""

    def test_init_with_defaults(self, fake_network, sender_keys) -> None:
        coordinator = DeliveryCoordinator(fake_network, sender_keys)
        assert coordinator.SERVICE_NAME == "delivery"
        assert coordinator.config.deadline == 5.0

    @pytest.mark.parametrize("value", [0.1, 121.0])
    def test_deadline_bounds(self, value) -> None:
        with pytest.raises(ValidationError):
            DeliveryConfig(deadline=value)


# ============================================================================
# Publish Tests
# ============================================================================


class TestPublish:
    """Tests for the publish step."""

    async def test_empty_live_set(self, coordinator, fake_network, receiver) -> None:
        with pytest.raises(NoLiveRelaysError):
            await coordinator.deliver(RelayCandidateSet(), receiver, "hi")
        assert fake_network.sessions == []

    async def test_publishes_once_to_live_set(
        self, coordinator, fake_network, receiver, sender_keys
    ) -> None:
        fake_network.responses = [(0.0, Ack(R1, fake_network.message_id, True))]

        await coordinator.deliver(live(R1), receiver, "hello there")

        assert fake_network.sent == [
            {"relays": ["wss://r1.example.com"], "receiver": receiver, "message": "hello there"}
        ]
        assert fake_network.sessions[0].keys is sender_keys

    async def test_subscribed_before_publish(self, coordinator, fake_network, receiver) -> None:
        fake_network.responses = [(0.0, Ack(R1, fake_network.message_id, True))]
        await coordinator.deliver(live(R1), receiver, "hi")
        assert fake_network.subscribed_before_send is True

    @pytest.mark.parametrize("error", [OSError("broken pipe"), TimeoutError()])
    async def test_publish_error_raised(self, coordinator, fake_network, receiver, error) -> None:
        fake_network.send_error = error

        with pytest.raises(PublishingError):
            await coordinator.deliver(live(R1), receiver, "hi")

        assert fake_network.sessions[0].closed

    async def test_open_error_raised(self, coordinator, fake_network, receiver) -> None:
        fake_network.open_error = OSError("no route")
        with pytest.raises(PublishingError, match="sending session"):
            await coordinator.deliver(live(R1), receiver, "hi")

    async def test_no_relay_added(self, coordinator, fake_network, receiver) -> None:
        fake_network.unusable = {R1.url}
        with pytest.raises(PublishingError):
            await coordinator.deliver(live(R1), receiver, "hi")
        assert fake_network.sent == []

    async def test_session_closed(self, coordinator, fake_network, receiver) -> None:
        fake_network.responses = [(0.0, Ack(R1, fake_network.message_id, True))]
        await coordinator.deliver(live(R1), receiver, "hi")
        assert fake_network.sessions[0].closed


# ============================================================================
# Aggregation Tests
# ============================================================================


class TestAggregation:
    """Tests for the acknowledgement aggregation loop."""

    async def test_single_relay_accepts(self, coordinator, fake_network, receiver) -> None:
        fake_network.responses = [(0.1, Ack(R1, fake_network.message_id, True))]

        outcome, elapsed = await timed(coordinator.deliver(live(R1), receiver, "hi"))

        assert outcome.message_id == fake_network.message_id
        assert dict(outcome.results) == {R1: PendingAck(AckState.ACCEPTED)}
        assert elapsed < DEADLINE

    async def test_reject_and_silence(self, coordinator, fake_network, receiver) -> None:
        fake_network.responses = [(0.05, Ack(R1, fake_network.message_id, False, "rate-limited"))]

        outcome, elapsed = await timed(coordinator.deliver(live(R1, R2), receiver, "hi"))

        assert dict(outcome.results) == {
            R1: PendingAck(AckState.REJECTED, "rate-limited"),
            R2: PendingAck(AckState.TIMED_OUT),
        }
        assert elapsed >= DEADLINE * 0.95
        assert not outcome.is_total_failure

    async def test_loop_ends_at_deadline_not_earlier(
        self, coordinator, fake_network, receiver
    ) -> None:
        message_id = fake_network.message_id
        fake_network.responses = [
            (0.02, Ack(R2, message_id, True)),
            (0.04, Ack(R1, message_id, True)),
        ]

        outcome, elapsed = await timed(coordinator.deliver(live(R1, R2, R3), receiver, "hi"))

        assert elapsed >= DEADLINE * 0.95
        assert outcome.accepted == [R1, R2]
        assert outcome.timed_out == [R3]

    async def test_all_answer_ends_early(self, coordinator, fake_network, receiver) -> None:
        message_id = fake_network.message_id
        fake_network.responses = [
            (0.01, Ack(R3, message_id, False, "blocked")),
            (0.02, Ack(R1, message_id, True)),
            (0.03, Ack(R2, message_id, True)),
        ]

        outcome, elapsed = await timed(coordinator.deliver(live(R1, R2, R3), receiver, "hi"))

        assert elapsed < DEADLINE
        assert outcome.unanswered == []
        assert list(outcome.results) == [R1, R2, R3]

    async def test_ack_for_other_message_ignored(
        self, coordinator, fake_network, receiver
    ) -> None:
        fake_network.responses = [(0.01, Ack(R1, "0" * 64, True))]

        outcome = await coordinator.deliver(live(R1), receiver, "hi")

        assert outcome.results[R1] == PendingAck(AckState.TIMED_OUT)

    async def test_ack_from_unknown_relay_ignored(
        self, coordinator, fake_network, receiver
    ) -> None:
        fake_network.responses = [(0.01, Ack(STRANGER, fake_network.message_id, True))]

        outcome = await coordinator.deliver(live(R1), receiver, "hi")

        assert STRANGER not in outcome.results
        assert outcome.timed_out == [R1]

    async def test_first_answer_is_final(self, coordinator, fake_network, receiver) -> None:
        message_id = fake_network.message_id
        fake_network.responses = [
            (0.01, Ack(R1, message_id, True)),
            (0.02, Ack(R1, message_id, False, "duplicate")),
        ]

        outcome = await coordinator.deliver(live(R1, R2), receiver, "hi")

        assert outcome.results[R1] == PendingAck(AckState.ACCEPTED)

    async def test_unrelated_notifications_ignored(
        self, coordinator, fake_network, receiver
    ) -> None:
        fake_network.responses = [
            (0.01, Other(relay=R1, description="Notice")),
            (0.02, Other()),
            (0.03, Ack(R1, fake_network.message_id, True)),
        ]

        outcome = await coordinator.deliver(live(R1), receiver, "hi")

        assert outcome.accepted == [R1]

    async def test_answers_in_any_order(self, coordinator, fake_network, receiver) -> None:
        message_id = fake_network.message_id
        fake_network.responses = [
            (0.03, Ack(R1, message_id, True)),
            (0.01, Ack(R2, message_id, False, "pow required")),
        ]

        outcome = await coordinator.deliver(live(R1, R2), receiver, "hi")

        assert outcome.summary() == {
            "wss://r1.example.com": "accepted",
            "wss://r2.example.com": "rejected('pow required')",
        }


# ============================================================================
# Channel Error Tests
# ============================================================================


class TestChannelError:
    """A broken notification channel stops the loop at once."""

    async def test_break_before_any_answer(self, coordinator, fake_network, receiver) -> None:
        fake_network.channel_error_after = 0.05

        outcome, elapsed = await timed(coordinator.deliver(live(R1, R2), receiver, "hi"))

        assert elapsed < DEADLINE
        assert outcome.channel_error == "channel broke"
        assert dict(outcome.results) == {R1: PendingAck(), R2: PendingAck()}
        assert outcome.is_total_failure

    async def test_break_after_an_answer(self, coordinator, fake_network, receiver) -> None:
        fake_network.responses = [(0.01, Ack(R1, fake_network.message_id, True))]
        fake_network.channel_error_after = 0.05

        outcome = await coordinator.deliver(live(R1, R2), receiver, "hi")

        assert outcome.accepted == [R1]
        assert outcome.results[R2].state == AckState.WAITING
        assert outcome.unanswered == [R2]
        assert not outcome.is_total_failure

