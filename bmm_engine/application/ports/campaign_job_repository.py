"""Campaign job repository port.

Stores campaigns and their per-recipient delivery jobs. Jobs are keyed by
(campaign_id, member_id), the resumption key of the dispatcher.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from bmm_engine.domain.models.campaign import Campaign, CampaignJob


class CampaignJobRepositoryProtocol(Protocol):
    """Protocol for campaign and delivery job storage."""

    async def save_campaign(self, campaign: Campaign) -> None:
        """Store (or replace) a campaign definition."""
        ...

    async def get_campaign(self, campaign_id: UUID) -> Campaign | None:
        """Retrieve a campaign by id."""
        ...

    async def get_job(self, campaign_id: UUID, member_id: UUID) -> CampaignJob | None:
        """Retrieve the job for one (campaign, member) pair."""
        ...

    async def save_job(self, job: CampaignJob) -> None:
        """Insert or replace the job for its (campaign, member) pair."""
        ...

    async def list_jobs(self, campaign_id: UUID) -> list[CampaignJob]:
        """List every job of a campaign."""
        ...
