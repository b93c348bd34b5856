"""Notifier stub implementation.

Records every accepted message instead of delivering it. Failures can be
injected per handle to exercise the dispatcher's isolation and retry paths.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from uuid import uuid4

from bmm_engine.application.ports.notifier import NotifierProtocol
from bmm_engine.domain.errors.delivery import TransportFailureError
from bmm_engine.domain.models.campaign import Channel, DeliveryReceipt, RenderedMessage


@dataclass(frozen=True)
class SentMessage:
    """A message the stub accepted."""

    handle: str
    channel: Channel
    message: RenderedMessage


class NotifierStub(NotifierProtocol):
    """In-memory notifier (development and testing).

    Attributes:
        sent: Accepted messages in send order.
        calls: Total send attempts, failed ones included.
        delay_seconds: Artificial latency per send.
    """

    def __init__(self, delay_seconds: float = 0.0) -> None:
        self.sent: list[SentMessage] = []
        self.calls = 0
        self.delay_seconds = delay_seconds
        self.in_flight = 0
        self.max_in_flight = 0
        self._failures: dict[str, list[TransportFailureError]] = {}
        self._always_fail: dict[str, TransportFailureError] = {}

    def clear(self) -> None:
        """Forget sent messages and injected failures."""
        self.sent.clear()
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self._failures.clear()
        self._always_fail.clear()

    def fail_handle(
        self,
        handle: str,
        retryable: bool = False,
        times: int | None = None,
        message: str = "Delivery rejected",
    ) -> None:
        """Inject failures for a handle.

        Args:
            handle: Email address or mobile number to fail.
            retryable: Whether the injected failure is transient.
            times: Fail this many times then succeed (None fails every time).
            message: Failure message.
        """
        error = TransportFailureError(message, retryable=retryable)
        if times is None:
            self._always_fail[handle] = error
        else:
            self._failures[handle] = [error] * times

    def sent_to(self, handle: str) -> list[SentMessage]:
        """Messages accepted for one handle."""
        return [m for m in self.sent if m.handle == handle]

    async def send(
        self,
        handle: str,
        channel: Channel,
        message: RenderedMessage,
    ) -> DeliveryReceipt:
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
            if handle in self._always_fail:
                raise self._always_fail[handle]
            pending = self._failures.get(handle)
            if pending:
                raise pending.pop(0)
            self.sent.append(SentMessage(handle=handle, channel=channel, message=message))
            return DeliveryReceipt(channel=channel, provider_message_id=str(uuid4()))
        finally:
            self.in_flight -= 1
