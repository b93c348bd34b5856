"""Domain error to RFC 7807 problem document mapping.

Routes catch RegistrationEngineError (and ValueError from input
normalisation) and re-raise problem_exception(exc, request).
"""

from fastapi import HTTPException, Request

from bmm_engine.domain.errors import (
    CampaignNotFoundError,
    ConcurrentModificationError,
    InvalidTransitionError,
    InvariantViolationError,
    MemberNotFoundError,
    MissingReasonError,
    NoTicketError,
    NotAttendingError,
    NotEligibleError,
    TemplateVariableError,
    TransportFailureError,
)

# (exception type, status, problem slug, title); first match wins
_PROBLEM_TYPES: list[tuple[type[Exception], int, str, str]] = [
    (InvalidTransitionError, 409, "invalid-transition", "Invalid Transition"),
    (NotAttendingError, 409, "not-attending", "Not Attending"),
    (NoTicketError, 409, "no-ticket", "No Ticket"),
    (InvariantViolationError, 409, "invariant-violation", "Invariant Violation"),
    (ConcurrentModificationError, 409, "concurrent-modification", "Concurrent Modification"),
    (MissingReasonError, 422, "missing-reason", "Absence Reason Required"),
    (NotEligibleError, 422, "not-eligible", "Not Eligible"),
    (TemplateVariableError, 422, "template-variable", "Invalid Template Variable"),
    (MemberNotFoundError, 404, "not-found", "Not Found"),
    (CampaignNotFoundError, 404, "campaign-not-found", "Campaign Not Found"),
    (TransportFailureError, 502, "transport-failure", "Delivery Failure"),
    (ValueError, 422, "invalid-request", "Invalid Request"),
]


def problem_detail(
    status: int, slug: str, title: str, detail: str, request: Request
) -> dict[str, object]:
    """Build an RFC 7807 problem document."""
    return {
        "type": f"urn:bmm:errors:{slug}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": str(request.url),
    }


def problem_exception(exc: Exception, request: Request) -> HTTPException:
    """Translate a domain error into an HTTPException with a problem document.

    Errors without a mapping become 500 so they are never reported as
    success or as a client mistake.
    """
    for error_type, status, slug, title in _PROBLEM_TYPES:
        if isinstance(exc, error_type):
            return HTTPException(
                status_code=status,
                detail=problem_detail(status, slug, title, str(exc), request),
            )
    return HTTPException(
        status_code=500,
        detail=problem_detail(500, "internal", "Internal Error", "Unexpected error", request),
    )
