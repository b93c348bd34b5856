"""Test helpers for registration engine tests.

Helpers:
    FakeTimeAuthority: Controllable time authority for deterministic tests
    make_registration: Builds a MemberRegistration at any stage

Usage:
    from tests.helpers import FakeTimeAuthority, make_registration
"""

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.registrations import make_registration

__all__ = ["FakeTimeAuthority", "make_registration"]
