"""Operator identification for administrative endpoints.

Authentication itself happens upstream (reverse proxy / SSO). The engine
only requires the operator identity so every administrative change is
attributed in records, check-ins and the override audit trail.
"""

from typing import Annotated

import structlog
from fastapi import Header, HTTPException, status

logger = structlog.get_logger(__name__)

MAX_OPERATOR_ID_LENGTH = 200


def get_operator_id(
    x_operator_id: Annotated[
        str | None,
        Header(description="Operator identity. Required for administrative operations."),
    ] = None,
) -> str:
    """Extract the operator identity from the X-Operator-Id header.

    Raises:
        HTTPException 401: If the header is missing or blank.
        HTTPException 400: If the header is too long.
    """
    log = logger.bind(component="operator_auth")

    operator_id = (x_operator_id or "").strip()
    if not operator_id:
        log.warning("auth_failed", reason="missing_operator_id")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "type": "urn:bmm:errors:operator-required",
                "title": "Operator Required",
                "status": 401,
                "detail": "X-Operator-Id header is required for administrative operations",
                "instance": "",
            },
        )

    if len(operator_id) > MAX_OPERATOR_ID_LENGTH:
        log.warning("auth_failed", reason="operator_id_too_long")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "type": "urn:bmm:errors:invalid-operator",
                "title": "Invalid Operator",
                "status": 400,
                "detail": f"X-Operator-Id must be at most {MAX_OPERATOR_ID_LENGTH} characters",
                "instance": "",
            },
        )

    return operator_id
