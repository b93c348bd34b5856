"""Campaign job repository stub implementation."""

from __future__ import annotations

from uuid import UUID

from bmm_engine.application.ports.campaign_job_repository import (
    CampaignJobRepositoryProtocol,
)
from bmm_engine.domain.models.campaign import Campaign, CampaignJob


class CampaignJobRepositoryStub(CampaignJobRepositoryProtocol):
    """In-memory stub for campaigns and delivery jobs (not for production use).

    Jobs are keyed by (campaign_id, member_id); saving a job replaces the
    previous state of the same pair.
    """

    def __init__(self) -> None:
        """Initialize the stub with empty storage."""
        self._campaigns: dict[UUID, Campaign] = {}
        self._jobs: dict[tuple[UUID, UUID], CampaignJob] = {}
        self.job_writes = 0

    def clear(self) -> None:
        """Clear all stored data (for test cleanup)."""
        self._campaigns.clear()
        self._jobs.clear()
        self.job_writes = 0

    async def save_campaign(self, campaign: Campaign) -> None:
        self._campaigns[campaign.id] = campaign

    async def get_campaign(self, campaign_id: UUID) -> Campaign | None:
        return self._campaigns.get(campaign_id)

    async def get_job(self, campaign_id: UUID, member_id: UUID) -> CampaignJob | None:
        return self._jobs.get((campaign_id, member_id))

    async def save_job(self, job: CampaignJob) -> None:
        self._jobs[(job.campaign_id, job.member_id)] = job
        self.job_writes += 1

    async def list_jobs(self, campaign_id: UUID) -> list[CampaignJob]:
        return [job for (cid, _), job in self._jobs.items() if cid == campaign_id]
