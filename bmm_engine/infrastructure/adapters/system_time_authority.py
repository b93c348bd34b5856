"""Host clock implementation of TimeAuthorityProtocol."""

from datetime import datetime, timezone

from bmm_engine.application.ports.time_authority import TimeAuthorityProtocol


class SystemTimeAuthority(TimeAuthorityProtocol):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)
