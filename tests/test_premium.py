"""
Tests for premium time.

The last premium day is stored; remaining days are always derived from it,
so the two values can never disagree.
"""

from datetime import datetime, timezone

from sqlalchemy import select, update

from gameaccount.exceptions import ErrorKind
from gameaccount.models.account import AccountRow
from gameaccount.services.account_service import SECONDS_PER_DAY, Account

NOW = 1_700_000_000


class FakeClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestDerivation:
    def test_no_premium_by_default(self):
        account = Account(clock=FakeClock())
        assert account.get_premium_remaining_days() == 0
        assert account.get_premium_last_day() == 0

    def test_remaining_days_sets_last_day(self):
        account = Account(clock=FakeClock())
        assert account.set_premium_remaining_days(10).ok
        assert account.get_premium_last_day() == NOW + 10 * SECONDS_PER_DAY
        assert account.get_premium_remaining_days() == 10

    def test_zero_days_clears_premium(self):
        account = Account(clock=FakeClock())
        account.set_premium_remaining_days(10).unwrap()
        account.set_premium_remaining_days(0).unwrap()
        assert account.get_premium_last_day() == 0

    def test_last_day_sets_remaining_days(self):
        account = Account(clock=FakeClock())
        account.set_premium_last_day(NOW + 3 * SECONDS_PER_DAY).unwrap()
        assert account.get_premium_remaining_days() == 3

    def test_partial_day_rounds_up(self):
        account = Account(clock=FakeClock())
        account.set_premium_last_day(NOW + 2 * SECONDS_PER_DAY + 60).unwrap()
        assert account.get_premium_remaining_days() == 3

    def test_remaining_days_count_down_with_clock(self):
        clock = FakeClock()
        account = Account(clock=clock)
        account.set_premium_remaining_days(5).unwrap()

        clock.now += 2 * SECONDS_PER_DAY
        assert account.get_premium_remaining_days() == 3
        clock.now += 10 * SECONDS_PER_DAY
        assert account.get_premium_remaining_days() == 0

    def test_last_day_accepts_datetime(self):
        account = Account(clock=FakeClock())
        moment = datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert account.set_premium_last_day(moment).ok
        assert account.get_premium_last_day() == int(moment.timestamp())

        assert account.set_premium_last_day(datetime(2030, 1, 1)).ok
        assert account.get_premium_last_day() == int(moment.timestamp())


class TestValidation:
    def test_negative_days_rejected(self):
        account = Account(clock=FakeClock())
        assert account.set_premium_remaining_days(-1).kind is ErrorKind.INVALID_LAST_DAY

    def test_non_integer_days_rejected(self):
        account = Account(clock=FakeClock())
        assert account.set_premium_remaining_days(1.5).kind is ErrorKind.INVALID_LAST_DAY

    def test_bad_last_day_rejected(self):
        account = Account(clock=FakeClock())
        for value in (-1, "tomorrow", 3.2, None):
            assert account.set_premium_last_day(value).kind is ErrorKind.INVALID_LAST_DAY
        assert account.get_premium_last_day() == 0


class TestPersistence:
    async def test_save_writes_both_columns(self, gateway, session_factory):
        account = Account(gateway=gateway, clock=FakeClock())
        account.set_email("premium@example.com").unwrap()
        account.set_premium_remaining_days(12).unwrap()
        (await account.save()).unwrap()

        async with session_factory() as session:
            row = await session.scalar(select(AccountRow).where(AccountRow.id == account.get_id()))
        assert row.premdays == 12
        assert row.lastday == NOW + 12 * SECONDS_PER_DAY

    async def test_load_derives_last_day_from_premdays_only_rows(
        self, gateway, make_account, session_factory
    ):
        """Rows that only carry premdays get a last day on load."""
        saved = await make_account()
        async with session_factory() as session:
            await session.execute(
                update(AccountRow)
                .where(AccountRow.id == saved.get_id())
                .values(premdays=4, lastday=0)
            )
            await session.commit()

        account = Account(saved.get_id(), gateway=gateway, clock=FakeClock())
        assert (await account.load()).ok
        assert account.get_premium_remaining_days() == 4
        assert account.get_premium_last_day() == NOW + 4 * SECONDS_PER_DAY
