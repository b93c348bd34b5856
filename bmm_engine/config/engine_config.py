"""Registration engine configuration.

Defines dispatch tuning, link generation and special vote policy with
environment variable overrides.

Environment Variables (Engine):
- BMM_DISPATCH_CONCURRENCY: Campaign jobs in flight at once (default: 8)
- BMM_NOTIFIER_TIMEOUT_SECONDS: Per-call notifier/renderer timeout (default: 10.0)
- BMM_DISPATCH_MAX_ATTEMPTS: Attempts per job for retryable failures (default: 3)
- BMM_DISPATCH_BACKOFF_SECONDS: Base of the exponential backoff (default: 1.0)
- BMM_PUBLIC_BASE_URL: Base URL for member links (default: https://events.example.org)
- BMM_AUTO_APPROVE_SPECIAL_VOTES: Approve special vote requests on submission (default: false)

Environment Variables (Notifier gateway):
- BMM_NOTIFIER_GATEWAY_URL: Base URL of the HTTP messaging gateway (unset: use the stub)
- BMM_NOTIFIER_API_KEY: Bearer token for the gateway
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Returns:
        Parsed integer value, or default if unset or invalid.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable with default.

    Returns:
        Parsed float value, or default if unset or invalid.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean environment variable with default."""
    value = os.environ.get(key)
    if value is None:
        return default
    normalised = value.strip().lower()
    if normalised in _TRUE_VALUES:
        return True
    if normalised in _FALSE_VALUES:
        return False
    return default


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for the registration engine.

    Attributes:
        dispatch_concurrency: Maximum campaign jobs in flight.
        notifier_timeout_seconds: Timeout for each notifier or renderer call.
        dispatch_max_attempts: Attempts per job for retryable failures.
        dispatch_backoff_seconds: Base delay; attempt n waits base * 2**(n-1).
        public_base_url: Base URL for registration, special vote and ticket links.
        auto_approve_special_votes: Approve requests on submission instead of
            leaving them PENDING for an administrator.
    """

    dispatch_concurrency: int = 8
    notifier_timeout_seconds: float = 10.0
    dispatch_max_attempts: int = 3
    dispatch_backoff_seconds: float = 1.0
    public_base_url: str = "https://events.example.org"
    auto_approve_special_votes: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.dispatch_concurrency < 1:
            raise ValueError(
                f"dispatch_concurrency must be positive, got {self.dispatch_concurrency}"
            )
        if self.notifier_timeout_seconds <= 0:
            raise ValueError(
                "notifier_timeout_seconds must be positive, "
                f"got {self.notifier_timeout_seconds}"
            )
        if self.dispatch_max_attempts < 1:
            raise ValueError(
                f"dispatch_max_attempts must be at least 1, got {self.dispatch_max_attempts}"
            )
        if self.dispatch_backoff_seconds < 0:
            raise ValueError(
                "dispatch_backoff_seconds must be non-negative, "
                f"got {self.dispatch_backoff_seconds}"
            )
        if not self.public_base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"public_base_url must be an http(s) URL, got {self.public_base_url!r}"
            )

    @classmethod
    def from_environment(cls) -> EngineConfig:
        """Create config from environment variables with defaults."""
        return cls(
            dispatch_concurrency=_get_int_env("BMM_DISPATCH_CONCURRENCY", 8),
            notifier_timeout_seconds=_get_float_env("BMM_NOTIFIER_TIMEOUT_SECONDS", 10.0),
            dispatch_max_attempts=_get_int_env("BMM_DISPATCH_MAX_ATTEMPTS", 3),
            dispatch_backoff_seconds=_get_float_env("BMM_DISPATCH_BACKOFF_SECONDS", 1.0),
            public_base_url=os.environ.get(
                "BMM_PUBLIC_BASE_URL", "https://events.example.org"
            ),
            auto_approve_special_votes=_get_bool_env(
                "BMM_AUTO_APPROVE_SPECIAL_VOTES", False
            ),
        )


@dataclass(frozen=True)
class NotifierGatewayConfig:
    """Configuration for the HTTP messaging gateway adapter.

    Attributes:
        gateway_url: Base URL of the gateway. None selects the in-memory notifier.
        api_key: Bearer token sent with every request.
    """

    gateway_url: str | None = None
    api_key: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.gateway_url is not None and not self.gateway_url.startswith(
            ("http://", "https://")
        ):
            raise ValueError(f"gateway_url must be an http(s) URL, got {self.gateway_url!r}")

    @property
    def enabled(self) -> bool:
        """True when a gateway URL is configured."""
        return bool(self.gateway_url)

    @classmethod
    def from_environment(cls) -> NotifierGatewayConfig:
        """Create config from environment variables."""
        return cls(
            gateway_url=os.environ.get("BMM_NOTIFIER_GATEWAY_URL") or None,
            api_key=os.environ.get("BMM_NOTIFIER_API_KEY") or None,
        )


# Testing config: no backoff, short timeouts
TEST_ENGINE_CONFIG = EngineConfig(
    dispatch_concurrency=4,
    notifier_timeout_seconds=0.5,
    dispatch_max_attempts=3,
    dispatch_backoff_seconds=0.0,
)
