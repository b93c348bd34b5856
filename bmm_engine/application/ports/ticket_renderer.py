"""Ticket renderer port - turns a ticket reference into a deliverable ticket."""

from __future__ import annotations

from typing import Protocol


class TicketRendererProtocol(Protocol):
    """Protocol for rendering a ticket (QR code page) for delivery."""

    async def render(self, reference: str) -> str:
        """Render the ticket and return the URL members use to open it.

        Raises:
            TransportFailureError: If the renderer is unavailable.
        """
        ...
