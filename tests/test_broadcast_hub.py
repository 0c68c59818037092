import asyncio
from datetime import datetime, timezone
import json

import anyio
import pytest
from fastapi.websockets import WebSocketState

from noisemap.models.noise import EmissionPoint
from noisemap.services.broadcast import WELCOME_TEXT, BroadcastHub


class FakeChannel:
    def __init__(self, *, delay: float = 0.0, fail: bool = False):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[str] = []
        self.delay = delay
        self.fail = fail

    async def send_text(self, data: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    @property
    def messages(self) -> list[dict]:
        return [json.loads(item) for item in self.sent]


def _points(*ids: str) -> list[EmissionPoint]:
    return [
        EmissionPoint(
            id=point_id,
            lat=25.2,
            lng=55.27,
            noise_level=75.0,
            region="Dubai",
            timestamp=datetime(2024, 5, 3, 19, 40, tzinfo=timezone.utc),
            altitude=5500,
            speed_kmh=720,
        )
        for point_id in ids
    ]


@pytest.mark.anyio
async def test_subscribe_sends_welcome_only_before_first_cycle():
    hub = BroadcastHub(send_timeout=1.0)
    channel = FakeChannel()

    await hub.subscribe(channel)

    assert channel.messages == [{"type": "WELCOME", "message": WELCOME_TEXT}]
    assert hub.subscriber_count == 1


@pytest.mark.anyio
async def test_publish_delivers_full_batch_to_every_subscriber():
    hub = BroadcastHub(send_timeout=1.0)
    first, second = FakeChannel(), FakeChannel()
    await hub.subscribe(first)
    await hub.subscribe(second)

    delivered = await hub.publish(_points("a1", "a2"))

    assert delivered == 2
    for channel in (first, second):
        update = channel.messages[-1]
        assert update["type"] == "NOISE_DATA_UPDATE"
        assert [point["id"] for point in update["data"]] == ["a1", "a2"]


@pytest.mark.anyio
async def test_late_subscriber_receives_last_published_batch():
    hub = BroadcastHub(send_timeout=1.0)
    early = FakeChannel()
    await hub.subscribe(early)
    await hub.publish(_points("a1"))
    await hub.publish(_points("b1", "b2"))

    late = FakeChannel()
    await hub.subscribe(late)

    assert len(late.sent) == 2
    assert late.messages[0]["type"] == "WELCOME"
    assert late.sent[1] == early.sent[-1]
    assert [point["id"] for point in late.messages[1]["data"]] == ["b1", "b2"]


@pytest.mark.anyio
async def test_empty_publish_keeps_last_known_and_sends_nothing():
    hub = BroadcastHub(send_timeout=1.0)
    channel = FakeChannel()
    await hub.subscribe(channel)
    await hub.publish(_points("a1"))
    sent_before = list(channel.sent)
    payload_before = hub.last_payload

    delivered = await hub.publish([])

    assert delivered == 0
    assert channel.sent == sent_before
    assert hub.last_payload == payload_before
    assert [point.id for point in hub.last_known] == ["a1"]


@pytest.mark.anyio
async def test_closed_channel_is_skipped_and_dropped():
    hub = BroadcastHub(send_timeout=1.0)
    open_channel, closed_channel = FakeChannel(), FakeChannel()
    await hub.subscribe(open_channel)
    await hub.subscribe(closed_channel)
    closed_channel.client_state = WebSocketState.DISCONNECTED
    sent_before = len(closed_channel.sent)

    delivered = await hub.publish(_points("a1"))

    assert delivered == 1
    assert len(closed_channel.sent) == sent_before
    assert hub.subscriber_count == 1


@pytest.mark.anyio
async def test_failing_subscriber_does_not_affect_others():
    hub = BroadcastHub(send_timeout=1.0)
    healthy, broken = FakeChannel(), FakeChannel()
    await hub.subscribe(healthy)
    await hub.subscribe(broken)
    broken.fail = True

    delivered = await hub.publish(_points("a1"))

    assert delivered == 1
    assert healthy.messages[-1]["type"] == "NOISE_DATA_UPDATE"
    assert hub.subscriber_count == 1


@pytest.mark.anyio
async def test_slow_subscriber_is_bounded_by_send_timeout():
    hub = BroadcastHub(send_timeout=0.05)
    fast, slow = FakeChannel(), FakeChannel()
    await hub.subscribe(fast)
    await hub.subscribe(slow)
    slow.delay = 5.0

    with anyio.fail_after(2):
        delivered = await hub.publish(_points("a1"))

    assert delivered == 1
    assert fast.messages[-1]["data"][0]["id"] == "a1"
    assert hub.subscriber_count == 1


@pytest.mark.anyio
async def test_unsubscribe_is_idempotent():
    hub = BroadcastHub(send_timeout=1.0)
    channel = FakeChannel()
    subscription = await hub.subscribe(channel)

    await hub.unsubscribe(subscription)
    await hub.unsubscribe(subscription)

    assert hub.subscriber_count == 0
    await hub.publish(_points("a1"))
    assert len(channel.sent) == 1


@pytest.mark.anyio
async def test_subscriber_joining_during_publish_sees_batch_once():
    hub = BroadcastHub(send_timeout=1.0)
    slow = FakeChannel(delay=0.1)
    await hub.subscribe(slow)

    joiner = FakeChannel()
    publish_task = asyncio.create_task(hub.publish(_points("a1")))
    await asyncio.sleep(0.01)
    await hub.subscribe(joiner)
    await publish_task

    updates = [m for m in joiner.messages if m["type"] == "NOISE_DATA_UPDATE"]
    assert len(updates) == 1
    assert updates[0]["data"][0]["id"] == "a1"


@pytest.mark.anyio
async def test_slow_joiner_does_not_delay_publish_to_others():
    hub = BroadcastHub(send_timeout=2.0)
    fast = FakeChannel()
    await hub.subscribe(fast)

    joiner = FakeChannel(delay=0.5)
    join_task = asyncio.create_task(hub.subscribe(joiner))
    await asyncio.sleep(0.01)

    with anyio.fail_after(0.2):
        delivered = await hub.publish(_points("a1"))

    assert delivered == 1
    assert fast.messages[-1]["data"][0]["id"] == "a1"

    await join_task
    assert [m["type"] for m in joiner.messages] == ["WELCOME", "NOISE_DATA_UPDATE"]
    assert joiner.sent[1] == hub.last_payload
    assert hub.subscriber_count == 2


@pytest.mark.anyio
async def test_slow_subscriber_does_not_delay_registration_of_new_ones():
    hub = BroadcastHub(send_timeout=2.0)
    slow = FakeChannel()
    await hub.subscribe(slow)
    slow.delay = 0.5
    publish_task = asyncio.create_task(hub.publish(_points("a1")))
    await asyncio.sleep(0.01)

    joiner = FakeChannel()
    with anyio.fail_after(0.2):
        await hub.subscribe(joiner)

    assert joiner.messages[-1]["data"][0]["id"] == "a1"
    await publish_task
    assert slow.messages[-1]["data"][0]["id"] == "a1"


@pytest.mark.anyio
async def test_joiner_catches_up_with_batch_published_during_sync():
    hub = BroadcastHub(send_timeout=2.0)
    await hub.publish(_points("a1"))

    joiner = FakeChannel(delay=0.1)
    join_task = asyncio.create_task(hub.subscribe(joiner))
    # Lands while the joiner's sync frame is in flight.
    await asyncio.sleep(0.15)
    await hub.publish(_points("b1"))
    await join_task

    batches = [
        [point["id"] for point in m["data"]]
        for m in joiner.messages
        if m["type"] == "NOISE_DATA_UPDATE"
    ]
    assert batches[-1] == ["b1"]
    assert batches.count(["b1"]) == 1
