"""Unit tests for the FakeTimeAuthority test helper."""

from datetime import datetime, timedelta, timezone

import pytest

from bmm_engine.application.ports.time_authority import TimeAuthorityProtocol
from tests.helpers.fake_time_authority import DEFAULT_TIME, FakeTimeAuthority

FROZEN_AT = datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


class TestFakeTimeAuthority:
    def test_implements_port(self) -> None:
        assert isinstance(FakeTimeAuthority(), TimeAuthorityProtocol)

    def test_default_time(self) -> None:
        assert FakeTimeAuthority().now() == DEFAULT_TIME

    def test_naive_time_is_read_as_utc(self) -> None:
        assert FakeTimeAuthority(frozen_at=datetime(2026, 1, 15, 10, 0, 0)).now() == FROZEN_AT

    def test_offset_time_is_normalised_to_utc(self) -> None:
        auckland = timezone(timedelta(hours=13))
        clock = FakeTimeAuthority(frozen_at=datetime(2026, 1, 15, 23, 0, 0, tzinfo=auckland))

        assert clock.now() == FROZEN_AT
        assert clock.now().tzinfo == timezone.utc

    def test_stays_frozen_between_reads(self) -> None:
        clock = FakeTimeAuthority(frozen_at=FROZEN_AT)

        assert clock.now() == clock.now()
        assert clock.reads == 2

    def test_advance_combines_units(self) -> None:
        clock = FakeTimeAuthority(frozen_at=FROZEN_AT)

        moved_to = clock.advance(30, minutes=1, hours=2)

        assert moved_to == FROZEN_AT + timedelta(hours=2, minutes=1, seconds=30)
        assert clock.now() == moved_to

    def test_advance_backwards_raises(self) -> None:
        with pytest.raises(ValueError, match="backwards"):
            FakeTimeAuthority().advance(days=-1)

    def test_set_time_can_rewind(self) -> None:
        clock = FakeTimeAuthority(frozen_at=FROZEN_AT)

        clock.set_time(datetime(2026, 1, 14, 10, 0, 0))

        assert clock.now() == FROZEN_AT - timedelta(days=1)
