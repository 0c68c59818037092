"""Fan-out of noise updates to connected WebSocket subscribers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Protocol, Sequence
from uuid import uuid4

from fastapi.websockets import WebSocketState

from noisemap.config import settings
from noisemap.models.noise import EmissionPoint, NoiseDataUpdate, WelcomeMessage

logger = logging.getLogger("noisemap.broadcast")

WELCOME_TEXT = "Connected to UAE Noise Monitor WebSocket"


class SubscriberChannel(Protocol):
    """The part of a WebSocket the hub relies on."""

    client_state: WebSocketState
    application_state: WebSocketState

    async def send_text(self, data: str) -> None: ...


@dataclass(eq=False)
class Subscription:
    """Handle returned to a subscriber; pass it back to unsubscribe."""

    channel: SubscriberChannel
    id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def is_open(self) -> bool:
        return (
            self.channel.client_state == WebSocketState.CONNECTED
            and self.channel.application_state == WebSocketState.CONNECTED
        )


class BroadcastHub:
    """Registry of subscribers plus the last published batch.

    Channel sends never happen under the registry lock. A joining channel is
    registered only once the batch it was synced with is still the latest,
    so it sees every batch exactly once: as its sync frame or as a delivery.
    """

    def __init__(self, *, send_timeout: float | None = None) -> None:
        self.send_timeout = send_timeout or settings.broadcast_send_timeout
        self._subscribers: dict[str, Subscription] = {}
        self._lock = asyncio.Lock()
        self._publish_lock = asyncio.Lock()
        self._version = 0
        self._last_points: list[EmissionPoint] = []
        self._last_payload: str | None = None
        self._welcome_payload = WelcomeMessage(message=WELCOME_TEXT).model_dump_json()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def last_known(self) -> list[EmissionPoint]:
        return list(self._last_points)

    @property
    def last_payload(self) -> str | None:
        return self._last_payload

    async def subscribe(self, channel: SubscriberChannel) -> Subscription:
        """Send the welcome and sync frames, then register the channel."""

        subscription = Subscription(channel=channel)
        await self._send(channel, self._welcome_payload)

        synced_version = 0
        while True:
            async with self._lock:
                if self._version == synced_version:
                    self._subscribers[subscription.id] = subscription
                    break
                synced_version = self._version
                payload = self._last_payload
            # A publish may land while this send is in flight; loop to catch up.
            await self._send(channel, payload)

        logger.info(
            "Subscriber %s connected (%s active)", subscription.id, self.subscriber_count
        )
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        if self._subscribers.pop(subscription.id, None) is not None:
            logger.info(
                "Subscriber %s disconnected (%s active)",
                subscription.id,
                self.subscriber_count,
            )

    async def publish(self, points: Sequence[EmissionPoint]) -> int:
        """Replace the last-known batch and push it to every open subscriber.

        An empty batch leaves the last-known state untouched and sends
        nothing. Returns the number of subscribers that received the batch.
        """

        if not points:
            logger.debug("Skipping publish of empty batch")
            return 0

        payload = NoiseDataUpdate(data=list(points)).model_dump_json()
        async with self._publish_lock:
            async with self._lock:
                self._version += 1
                self._last_points = list(points)
                self._last_payload = payload
                targets = list(self._subscribers.values())

            results = await asyncio.gather(
                *(self._deliver(subscription, payload) for subscription in targets)
            )
            async with self._lock:
                for subscription, delivered in zip(targets, results):
                    if not delivered:
                        self._subscribers.pop(subscription.id, None)

        delivered_count = sum(1 for delivered in results if delivered)
        logger.debug(
            "Published %s points to %s of %s subscribers",
            len(points),
            delivered_count,
            len(targets),
        )
        return delivered_count

    async def _send(self, channel: SubscriberChannel, payload: str) -> None:
        await asyncio.wait_for(channel.send_text(payload), timeout=self.send_timeout)

    async def _deliver(self, subscription: Subscription, payload: str) -> bool:
        if not subscription.is_open:
            return False
        try:
            await self._send(subscription.channel, payload)
        except asyncio.TimeoutError:
            logger.warning("Subscriber %s timed out; dropping", subscription.id)
            return False
        except Exception as exc:  # noqa: BLE001 - any send failure means the peer is gone
            logger.info("Subscriber %s send failed: %s", subscription.id, exc)
            return False
        return True


__all__ = ["BroadcastHub", "SubscriberChannel", "Subscription", "WELCOME_TEXT"]
