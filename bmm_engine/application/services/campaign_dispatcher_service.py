"""Campaign dispatcher: bulk, per-recipient, failure-isolated sends.

A dispatch resolves the campaign's segment, queues one job per recipient
and runs the jobs on a bounded pool of coroutines. Every job ends SENT,
FAILED or SKIPPED, and its result is persisted as soon as it is known.

Failure isolation:
- A template variable that cannot be resolved fails that job only.
- Notifier and ticket renderer calls run under a timeout. Timeouts and
  retryable transport failures are retried with exponential backoff;
  terminal failures are not.
- A recipient with no usable channel is SKIPPED with a recorded reason.

Resumption:
    Jobs are keyed by (campaign_id, member_id). Dispatching the same
    campaign again re-queues FAILED jobs and any new recipients, and never
    re-sends to a member whose job is SENT or SKIPPED. Dispatches of one
    campaign hold its lock, so an overlapping retry cannot send twice.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar
from uuid import UUID

from bmm_engine.application.ports.campaign_job_repository import (
    CampaignJobRepositoryProtocol,
)
from bmm_engine.application.ports.engine_metrics import EngineMetricsProtocol
from bmm_engine.application.ports.notifier import NotifierProtocol
from bmm_engine.application.ports.ticket_renderer import TicketRendererProtocol
from bmm_engine.application.ports.time_authority import TimeAuthorityProtocol
from bmm_engine.application.services.base import LoggingMixin
from bmm_engine.application.services.locks import LockRegistry
from bmm_engine.application.services.segment_service import SegmentService
from bmm_engine.application.services.ticket_ledger_service import TicketLedgerService
from bmm_engine.domain.errors import (
    CampaignNotFoundError,
    TemplateVariableError,
    TransportFailureError,
)
from bmm_engine.domain.models.campaign import (
    Campaign,
    CampaignJob,
    CampaignKind,
    CampaignReport,
    Channel,
    JobStatus,
    MessageTemplate,
    RenderedMessage,
)
from bmm_engine.domain.models.registration import MemberRegistration
from bmm_engine.domain.models.ticket import TicketDelivery
from bmm_engine.domain.services.template_renderer import placeholders_in, render

T = TypeVar("T")

SESSION_FORMAT = "%A %d %B %Y, %H:%M"


class CampaignDispatcherService(LoggingMixin):
    """Sends campaigns to segment members through the notifier port.

    Attributes:
        _concurrency: Maximum jobs in flight at once.
        _timeout: Seconds allowed for each notifier or renderer call.
        _max_attempts: Attempts per job for retryable failures.
        _backoff: Base delay in seconds; attempt n waits backoff * 2**(n-1).
    """

    def __init__(
        self,
        segments: SegmentService,
        jobs: CampaignJobRepositoryProtocol,
        notifier: NotifierProtocol,
        ticket_renderer: TicketRendererProtocol,
        ledger: TicketLedgerService,
        time_authority: TimeAuthorityProtocol,
        public_base_url: str = "https://events.example.org",
        concurrency: int = 8,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        metrics: EngineMetricsProtocol | None = None,
        campaign_locks: LockRegistry | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._segments = segments
        self._jobs = jobs
        self._notifier = notifier
        self._renderer = ticket_renderer
        self._ledger = ledger
        self._time = time_authority
        self._base_url = public_base_url.rstrip("/")
        self._concurrency = concurrency
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._backoff = backoff_seconds
        self._metrics = metrics
        self._campaign_locks = campaign_locks or LockRegistry()
        self._init_logger(component="campaigns")

    async def dispatch(self, campaign: Campaign) -> CampaignReport:
        """Send a campaign to every member of its segment.

        Dispatches of the same campaign run one at a time. A dispatch that
        overlaps a running one waits for it, then only sends what is still
        unresolved.

        Args:
            campaign: Campaign to send (or resume).

        Returns:
            CampaignReport aggregated after every job resolved.
        """
        async with self._campaign_locks.hold(campaign.id):
            return await self._dispatch_locked(campaign)

    async def resume(self, campaign_id: UUID) -> CampaignReport:
        """Dispatch a stored campaign again, sending only the unsent remainder.

        Raises:
            CampaignNotFoundError: If the campaign was never dispatched.
        """
        campaign = await self._jobs.get_campaign(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        return await self.dispatch(campaign)

    async def _dispatch_locked(self, campaign: Campaign) -> CampaignReport:
        log = self._log_operation(
            "dispatch",
            campaign_id=str(campaign.id),
            kind=campaign.kind.value,
        )
        await self._jobs.save_campaign(campaign)

        recipients = await self._segments.resolve(campaign.criteria)
        queued: list[MemberRegistration] = []
        for member in recipients:
            existing = await self._jobs.get_job(campaign.id, member.id)
            if existing is not None and existing.status.final:
                continue
            await self._jobs.save_job(
                CampaignJob(
                    campaign_id=campaign.id,
                    member_id=member.id,
                    status=JobStatus.QUEUED,
                    attempts=existing.attempts if existing else 0,
                    updated_at=self._time.now(),
                )
            )
            queued.append(member)

        log.info(
            "campaign_dispatch_started",
            recipients=len(recipients),
            queued=len(queued),
            already_resolved=len(recipients) - len(queued),
        )

        semaphore = asyncio.Semaphore(self._concurrency)

        async def run_job(member: MemberRegistration) -> None:
            async with semaphore:
                await self._process(campaign, member)

        await asyncio.gather(*[run_job(member) for member in queued])

        report = await self.get_report(campaign.id)
        log.info(
            "campaign_dispatch_completed",
            total=report.total,
            sent=report.sent,
            failed=report.failed,
            skipped=report.skipped,
        )
        return report

    async def get_report(self, campaign_id: UUID) -> CampaignReport:
        """Return the campaign's aggregate progress.

        Raises:
            CampaignNotFoundError: If the campaign was never dispatched.
        """
        if await self._jobs.get_campaign(campaign_id) is None:
            raise CampaignNotFoundError(campaign_id)
        jobs = await self._jobs.list_jobs(campaign_id)
        return CampaignReport.from_jobs(campaign_id, jobs)

    async def _process(self, campaign: Campaign, member: MemberRegistration) -> None:
        """Run one job to a final status and persist it."""
        log = self._log_operation(
            "send",
            campaign_id=str(campaign.id),
            member_id=str(member.id),
        )
        previous = await self._jobs.get_job(campaign.id, member.id)
        attempts = previous.attempts if previous else 0

        selected = self._select_channel(campaign, member)
        if selected is None:
            reason = (
                f"no usable {campaign.channel.value.lower()} contact"
                if campaign.channel is not None
                else "no usable email or mobile contact"
            )
            await self._finish(campaign, member, JobStatus.SKIPPED, None, attempts, reason)
            log.info("campaign_job_skipped", reason=reason)
            return
        channel, handle = selected

        try:
            message = await self._compose(campaign, member, channel)
        except TemplateVariableError as exc:
            await self._finish(campaign, member, JobStatus.FAILED, channel, attempts, str(exc))
            log.warning("campaign_job_failed", error=str(exc), retryable=False)
            return
        except _RetriesExhaustedError as exc:
            # Renderer attempts are not notifier attempts
            error = f"Ticket rendering failed: {exc.cause}"
            await self._finish(
                campaign,
                member,
                JobStatus.FAILED,
                channel,
                attempts,
                error,
                retryable=exc.retryable,
            )
            log.warning("campaign_job_failed", error=error, retryable=exc.retryable)
            return
        except Exception as exc:
            await self._finish(campaign, member, JobStatus.FAILED, channel, attempts, str(exc))
            log.error("campaign_job_error", error=str(exc), error_type=type(exc).__name__)
            return

        async def send() -> object:
            return await self._notifier.send(handle, channel, message)

        try:
            made, _ = await self._with_retries(send)
            attempts += made
        except _RetriesExhaustedError as exc:
            attempts += exc.attempts
            await self._finish(
                campaign,
                member,
                JobStatus.FAILED,
                channel,
                attempts,
                str(exc.cause),
                retryable=exc.retryable,
            )
            log.warning(
                "campaign_job_failed",
                error=str(exc.cause),
                retryable=exc.retryable,
                attempts=exc.attempts,
            )
            return
        except Exception as exc:
            await self._finish(
                campaign, member, JobStatus.FAILED, channel, attempts + 1, str(exc)
            )
            log.error("campaign_job_error", error=str(exc), error_type=type(exc).__name__)
            return

        if campaign.kind is CampaignKind.TICKET and member.ticket_reference:
            await self._ledger.record_delivery(
                TicketDelivery(
                    ticket_reference=member.ticket_reference,
                    member_id=member.id,
                    channel=channel.value,
                    campaign_id=campaign.id,
                    delivered_at=self._time.now(),
                )
            )
        await self._finish(campaign, member, JobStatus.SENT, channel, attempts)
        log.info("campaign_job_sent", channel=channel.value)

    async def _compose(
        self,
        campaign: Campaign,
        member: MemberRegistration,
        channel: Channel,
    ) -> RenderedMessage:
        if campaign.kind is CampaignKind.TICKET and not member.ticket_reference:
            raise TemplateVariableError("ticketUrl", "member holds no ticket")
        values = await self._template_values(campaign, member)
        template = campaign.template
        if channel is Channel.SMS and template.subject is not None:
            # SMS carries the body alone; its subject is never resolved
            template = MessageTemplate(body=template.body)
        return render(template, values)

    async def _finish(
        self,
        campaign: Campaign,
        member: MemberRegistration,
        status: JobStatus,
        channel: Channel | None,
        attempts: int,
        error: str | None = None,
        retryable: bool = False,
    ) -> None:
        await self._jobs.save_job(
            CampaignJob(
                campaign_id=campaign.id,
                member_id=member.id,
                status=status,
                channel=channel,
                attempts=attempts,
                error=error,
                retryable=retryable,
                updated_at=self._time.now(),
            )
        )
        if self._metrics is not None:
            self._metrics.record_job(status.value, channel.value if channel else "none")

    def _select_channel(
        self,
        campaign: Campaign,
        member: MemberRegistration,
    ) -> tuple[Channel, str] | None:
        """Pick the delivery channel: email first, then SMS.

        A campaign channel override restricts delivery to that channel.
        """
        email = (Channel.EMAIL, member.email) if member.has_email and member.email else None
        sms = (Channel.SMS, member.mobile) if member.has_mobile and member.mobile else None

        if campaign.channel is Channel.EMAIL:
            return email
        if campaign.channel is Channel.SMS:
            return sms
        return email or sms

    async def _template_values(
        self,
        campaign: Campaign,
        member: MemberRegistration,
    ) -> dict[str, str | None]:
        """Build the placeholder values for one recipient.

        Values that do not apply to the member are None, so a template
        that uses them fails this job rather than sending a blank.
        """
        token = member.access_token
        assignment = member.assignment
        values: dict[str, str | None] = {
            "name": member.name,
            "firstName": member.first_name,
            "membershipNumber": member.membership_number,
            "region": member.region.label,
            "forum": member.forum,
            "assignedVenue": assignment.venue if assignment else None,
            "assignedDateTime": (
                assignment.session_at.strftime(SESSION_FORMAT) if assignment else None
            ),
            "registrationLink": f"{self._base_url}/register?token={token}",
            "specialVoteLink": (
                f"{self._base_url}/register/special-vote?token={token}"
                if member.special_vote_eligible
                else None
            ),
            "ticketUrl": None,
        }

        wants_ticket = campaign.kind is CampaignKind.TICKET or "ticketUrl" in (
            placeholders_in(campaign.template.body)
            | placeholders_in(campaign.template.subject or "")
        )
        if wants_ticket and member.ticket_reference:
            reference = member.ticket_reference

            async def render_ticket() -> str:
                return await self._renderer.render(reference)

            _, values["ticketUrl"] = await self._with_retries(render_ticket)
        return values

    async def _with_retries(
        self,
        call: Callable[[], Awaitable[T]],
    ) -> tuple[int, T]:
        """Run an external call under the timeout, retrying transient failures.

        Returns:
            Tuple of (attempts made, result).

        Raises:
            _RetriesExhaustedError: When the call failed for good.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await asyncio.wait_for(call(), timeout=self._timeout)
                return attempt, result
            except asyncio.TimeoutError:
                error = TransportFailureError(
                    f"Timed out after {self._timeout}s", retryable=True
                )
            except TransportFailureError as exc:
                error = exc

            if not error.retryable or attempt >= self._max_attempts:
                raise _RetriesExhaustedError(error, attempt)

            delay = self._backoff * (2 ** (attempt - 1))
            if delay > 0:
                await asyncio.sleep(delay)


class _RetriesExhaustedError(Exception):
    """Carries the final transport failure out of the retry loop."""

    def __init__(self, cause: TransportFailureError, attempts: int) -> None:
        self.cause = cause
        self.attempts = attempts
        self.retryable = cause.retryable
        super().__init__(str(cause))
