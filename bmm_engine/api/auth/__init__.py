"""Request identity helpers for the API."""

from bmm_engine.api.auth.operator_auth import get_operator_id

__all__ = ["get_operator_id"]
