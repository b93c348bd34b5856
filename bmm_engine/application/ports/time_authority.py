"""Clock port.

Every timestamp the engine records (preference submission, attendance
decision, ticket issue, check-in, campaign job updates) is read from one
injected TimeAuthorityProtocol, never from datetime.now().
"""

from abc import ABC, abstractmethod
from datetime import datetime


class TimeAuthorityProtocol(ABC):
    """Source of the engine's notion of "now".

    SystemTimeAuthority reads the host clock; tests inject
    tests.helpers.FakeTimeAuthority.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Current instant as a timezone-aware UTC datetime."""
