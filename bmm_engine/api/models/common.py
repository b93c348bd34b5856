"""Shared API model types."""

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, PlainSerializer

# Custom datetime serializer for ISO 8601 with Z suffix (Pydantic v2)
DateTimeWithZ = Annotated[
    datetime,
    PlainSerializer(
        lambda v: v.isoformat().replace("+00:00", "Z") if v else None, return_type=str
    ),
]


class StageEnum(str, Enum):
    """Registration stage as exposed over the API."""

    INVITED = "INVITED"
    PREFERENCE_SUBMITTED = "PREFERENCE_SUBMITTED"
    VENUE_ASSIGNED = "VENUE_ASSIGNED"
    ATTENDANCE_CONFIRMED = "ATTENDANCE_CONFIRMED"
    NOT_ATTENDING = "NOT_ATTENDING"
    TICKET_ISSUED = "TICKET_ISSUED"
    CHECKED_IN = "CHECKED_IN"


class CheckInMethodEnum(str, Enum):
    """How an arrival is recorded."""

    QR_SCAN = "QR_SCAN"
    MANUAL = "MANUAL"
    BULK = "BULK"


class ProblemDetail(BaseModel):
    """RFC 7807 problem document.

    Attributes:
        type: URN identifying the problem type.
        title: Short human-readable summary.
        status: HTTP status code.
        detail: Explanation specific to this occurrence.
        instance: Request URL.
    """

    type: str
    title: str
    status: int
    detail: str
    instance: str
