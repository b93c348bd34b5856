"""Ticket renderer stub: builds the ticket page URL from the reference."""

from __future__ import annotations

from urllib.parse import quote

from bmm_engine.application.ports.ticket_renderer import TicketRendererProtocol
from bmm_engine.domain.errors.delivery import TransportFailureError


class TicketRendererStub(TicketRendererProtocol):
    """URL-building ticket renderer (development and testing).

    Attributes:
        rendered: References rendered so far.
        available: When False, render() raises a retryable failure.
    """

    def __init__(self, base_url: str = "https://events.example.org") -> None:
        self._base_url = base_url.rstrip("/")
        self.rendered: list[str] = []
        self.available = True

    async def render(self, reference: str) -> str:
        if not self.available:
            raise TransportFailureError("Ticket renderer unavailable", retryable=True)
        self.rendered.append(reference)
        return f"{self._base_url}/ticket?token={quote(reference)}"
