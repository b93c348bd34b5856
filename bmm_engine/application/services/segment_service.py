"""Segment service: recipient preview and resolution.

Preview and dispatch both go through resolve(), so the members an operator
previews are exactly the members a campaign sends to.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from bmm_engine.application.ports.registration_repository import (
    RegistrationRepositoryProtocol,
)
from bmm_engine.application.services.base import LoggingMixin
from bmm_engine.domain.models.registration import MemberRegistration
from bmm_engine.domain.models.segment import SegmentCriteria
from bmm_engine.domain.services.segment_filter import select


@dataclass(frozen=True, eq=True)
class SegmentPreview:
    """Side-effect free summary of a segment.

    Attributes:
        member_ids: Selected members in membership number order.
        total: Number of selected members.
        email: Members reachable by email.
        sms_only: Members reachable only by SMS.
        unreachable: Members with no usable channel.
    """

    member_ids: tuple[UUID, ...]
    total: int
    email: int
    sms_only: int
    unreachable: int


class SegmentService(LoggingMixin):
    """Evaluates segment criteria against stored registrations."""

    def __init__(self, registrations: RegistrationRepositoryProtocol) -> None:
        self._registrations = registrations
        self._init_logger(component="segmentation")

    async def resolve(self, criteria: SegmentCriteria) -> list[MemberRegistration]:
        """Return the registrations in a segment, ordered by membership number."""
        if criteria.event_id is not None:
            records = await self._registrations.list_by_event(criteria.event_id)
        else:
            records = await self._registrations.list_all()
        return select(records, criteria)

    async def preview(self, criteria: SegmentCriteria) -> SegmentPreview:
        """Summarise a segment without writing anything."""
        members = await self.resolve(criteria)
        email = sum(1 for m in members if m.has_email)
        sms_only = sum(1 for m in members if m.has_mobile and not m.has_email)
        preview = SegmentPreview(
            member_ids=tuple(m.id for m in members),
            total=len(members),
            email=email,
            sms_only=sms_only,
            unreachable=len(members) - email - sms_only,
        )
        self._log_operation("preview").debug("segment_previewed", total=preview.total)
        return preview
