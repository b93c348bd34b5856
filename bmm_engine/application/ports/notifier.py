"""Notifier port - outbound email and SMS delivery.

The engine never speaks a vendor protocol. A notifier adapter receives a
fully rendered message and a contact handle and either accepts it or raises
TransportFailureError with retryable set according to whether the failure
is transient (timeouts, throttling, 5xx) or terminal (rejected handle).
"""

from __future__ import annotations

from typing import Protocol

from bmm_engine.domain.models.campaign import Channel, DeliveryReceipt, RenderedMessage


class NotifierProtocol(Protocol):
    """Protocol for outbound message delivery."""

    async def send(
        self,
        handle: str,
        channel: Channel,
        message: RenderedMessage,
    ) -> DeliveryReceipt:
        """Deliver one message.

        Args:
            handle: Email address or mobile number.
            channel: Delivery channel.
            message: Rendered content.

        Returns:
            DeliveryReceipt once the provider accepted the message.

        Raises:
            TransportFailureError: If delivery failed.
        """
        ...
