"""HTTP messaging gateway adapter for NotifierProtocol.

Posts each rendered message to a JSON gateway:

    POST {gateway_url}/messages
    Authorization: Bearer {api_key}
    {"channel": "EMAIL", "to": "...", "subject": "...", "body": "..."}

The adapter makes exactly one attempt per send; retries are the
dispatcher's concern. One AsyncClient serves every send so connections are
pooled across a campaign; close() releases it at shutdown. Failures are
classified for the dispatcher:
- network errors, timeouts, 429 and 5xx are retryable
- any other non-2xx response is terminal
"""

from __future__ import annotations

import httpx
import structlog

from bmm_engine.application.ports.notifier import NotifierProtocol
from bmm_engine.config.engine_config import NotifierGatewayConfig
from bmm_engine.domain.errors.delivery import TransportFailureError
from bmm_engine.domain.models.campaign import Channel, DeliveryReceipt, RenderedMessage

log = structlog.get_logger()


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class HttpNotifierAdapter(NotifierProtocol):
    """Delivers messages through an HTTP messaging gateway."""

    def __init__(
        self,
        config: NotifierGatewayConfig,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        """Initialize the adapter.

        Args:
            config: Gateway URL and credentials.
            client: Client to borrow (tests pass one with a MockTransport).
                When omitted the adapter creates and owns one.
            timeout_seconds: Request timeout for an adapter-owned client.
        """
        if not config.gateway_url:
            raise ValueError("HttpNotifierAdapter requires a gateway_url")
        self._endpoint = f"{config.gateway_url.rstrip('/')}/messages"
        self._headers = {"Content-Type": "application/json"}
        if config.api_key:
            self._headers["Authorization"] = f"Bearer {config.api_key}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    async def close(self) -> None:
        """Close the client if the adapter created it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def send(
        self,
        handle: str,
        channel: Channel,
        message: RenderedMessage,
    ) -> DeliveryReceipt:
        payload: dict[str, str | None] = {
            "channel": channel.value,
            "to": handle,
            "body": message.body,
        }
        if channel is Channel.EMAIL:
            payload["subject"] = message.subject

        response = await self._post(payload, channel)

        if response.status_code >= 300:
            retryable = _is_retryable_status(response.status_code)
            log.warning(
                "gateway_delivery_rejected",
                channel=channel.value,
                status_code=response.status_code,
                retryable=retryable,
            )
            raise TransportFailureError(
                f"Gateway responded {response.status_code}",
                retryable=retryable,
            )

        provider_id: str | None = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("id") is not None:
            provider_id = str(body["id"])

        log.info(
            "gateway_delivery_accepted",
            channel=channel.value,
            status_code=response.status_code,
            provider_message_id=provider_id,
        )
        return DeliveryReceipt(channel=channel, provider_message_id=provider_id)

    async def _post(
        self,
        payload: dict[str, str | None],
        channel: Channel,
    ) -> httpx.Response:
        try:
            return await self._client.post(self._endpoint, json=payload, headers=self._headers)
        except httpx.TimeoutException as exc:
            log.warning("gateway_delivery_timeout", channel=channel.value, error=str(exc))
            raise TransportFailureError("Gateway request timed out", retryable=True) from exc
        except httpx.HTTPError as exc:
            log.warning("gateway_delivery_error", channel=channel.value, error=str(exc))
            raise TransportFailureError(
                f"Gateway request failed: {exc}", retryable=True
            ) from exc
