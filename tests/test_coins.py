"""
Tests for the coin ledger.

These tests verify:
  - add/remove change the balance and write exactly one ledger row
  - Refused changes (not enough coins, overflow) leave balance and ledger alone
  - Balance checks happen in storage, so independent copies of one account
    cannot overdraw it
  - Reconciliation rows go through the write scheduler without moving coins
  - Unusable types, descriptions and page bounds fail with VALUE_OVERFLOW
"""

from sqlalchemy import BigInteger

from gameaccount.config import settings
from gameaccount.database import create_engine_from_settings, create_session_factory
from gameaccount.exceptions import ErrorKind
from gameaccount.models.account import AccountRow
from gameaccount.models.coin_transaction import CoinTransactionRow, CoinTransactionType
from gameaccount.models.player import PlayerRow
from gameaccount.services.account_service import Account
from gameaccount.storage import SqlStorageGateway


async def ledger(account: Account):
    return (await account.get_coin_transactions()).unwrap()


class TestAddCoins:
    async def test_add_increases_balance(self, make_account):
        account = await make_account()

        result = await account.add_coins(250, "Store purchase")
        assert result.ok
        assert result.value == 250
        assert (await account.get_coins()).value == 250

        rows = await ledger(account)
        assert len(rows) == 1
        assert rows[0].type is CoinTransactionType.ADD
        assert rows[0].amount == 250
        assert rows[0].description == "Store purchase"
        assert rows[0].account_id == account.get_id()

    async def test_add_zero_records_row(self, make_account):
        account = await make_account()
        assert (await account.add_coins(0)).value == 0
        assert len(await ledger(account)) == 1

    async def test_add_up_to_limit(self, make_account, set_coins):
        account = await make_account()
        await set_coins(account.get_id(), settings.COINS_MAX - 10)

        result = await account.add_coins(10)
        assert result.value == settings.COINS_MAX

    async def test_add_overflow_rejected(self, make_account, set_coins):
        """Adding past COINS_MAX fails without changing anything."""
        account = await make_account()
        await set_coins(account.get_id(), settings.COINS_MAX - 10)

        result = await account.add_coins(11)
        assert result.kind is ErrorKind.VALUE_OVERFLOW
        assert result.error.balance == settings.COINS_MAX - 10
        assert (await account.get_coins()).value == settings.COINS_MAX - 10
        assert await ledger(account) == []

    async def test_amount_out_of_range_rejected(self, make_account):
        account = await make_account()
        assert (await account.add_coins(-1)).kind is ErrorKind.VALUE_OVERFLOW
        assert (await account.add_coins(settings.COINS_MAX + 1)).kind is ErrorKind.VALUE_OVERFLOW
        assert (await account.remove_coins(-1)).kind is ErrorKind.VALUE_OVERFLOW
        assert (await account.add_coins(1.5)).kind is ErrorKind.VALUE_OVERFLOW
        assert await ledger(account) == []


    async def test_balance_beyond_32_bit_signed(self, make_account):
        account = await make_account()
        assert (await account.add_coins(3_000_000_000)).value == 3_000_000_000
        assert (await account.get_coins()).value == 3_000_000_000

    def test_wide_columns_are_64_bit(self):
        for column in (
            AccountRow.__table__.c.coins,
            AccountRow.__table__.c.lastday,
            AccountRow.__table__.c.creation,
            CoinTransactionRow.__table__.c.amount,
            PlayerRow.__table__.c.deletion,
        ):
            assert isinstance(column.type, BigInteger), column.name

    async def test_long_description_rejected(self, make_account):
        account = await make_account()
        result = await account.add_coins(10, "x" * 256)
        assert result.kind is ErrorKind.VALUE_OVERFLOW
        assert (await account.get_coins()).value == 0
        assert await ledger(account) == []

        assert (await account.add_coins(10, "x" * 255)).ok
        assert (await ledger(account))[0].description == "x" * 255

    async def test_non_text_description_rejected(self, make_account):
        account = await make_account()
        assert (await account.add_coins(10, 42)).kind is ErrorKind.VALUE_OVERFLOW
        assert await ledger(account) == []


class TestRemoveCoins:
    async def test_remove_decreases_balance(self, make_account, set_coins):
        account = await make_account()
        await set_coins(account.get_id(), 100)

        result = await account.remove_coins(40, "Outfit")
        assert result.value == 60

        rows = await ledger(account)
        assert len(rows) == 1
        assert rows[0].type is CoinTransactionType.REMOVE
        assert rows[0].amount == 40

    async def test_remove_exact_balance(self, make_account, set_coins):
        account = await make_account()
        await set_coins(account.get_id(), 100)
        assert (await account.remove_coins(100)).value == 0

    async def test_remove_more_than_balance_rejected(self, make_account, set_coins):
        account = await make_account()
        await set_coins(account.get_id(), 100)

        result = await account.remove_coins(101)
        assert result.kind is ErrorKind.VALUE_NOT_ENOUGH_COINS
        assert result.error.requested == 101
        assert result.error.available == 100
        assert (await account.get_coins()).value == 100
        assert await ledger(account) == []


    async def test_remove_beyond_coins_max_is_not_enough_coins(self, make_account, set_coins):
        account = await make_account()
        await set_coins(account.get_id(), 100)

        result = await account.remove_coins(settings.COINS_MAX + 1)
        assert result.kind is ErrorKind.VALUE_NOT_ENOUGH_COINS
        assert result.error.available == 100
        assert (await account.get_coins()).value == 100
        assert await ledger(account) == []


class TestScenario:
    async def test_account_seven(self, make_account, set_coins):
        """Account 7 with 100 coins: remove 150, add 50, remove 150."""
        account = await make_account(email="seven@example.com", account_id=7)
        await set_coins(7, 100)

        refused = await account.remove_coins(150)
        assert refused.kind is ErrorKind.VALUE_NOT_ENOUGH_COINS
        assert (await account.get_coins()).value == 100

        added = await account.add_coins(50)
        assert added.value == 150
        rows = await ledger(account)
        assert [(r.type, r.amount) for r in rows] == [(CoinTransactionType.ADD, 50)]

        removed = await account.remove_coins(150)
        assert removed.value == 0
        rows = await ledger(account)
        assert [(r.type, r.amount) for r in rows] == [
            (CoinTransactionType.REMOVE, 150),
            (CoinTransactionType.ADD, 50),
        ]


class TestStorageConsistency:
    async def test_independent_copies_cannot_overdraw(self, gateway, make_account, set_coins):
        """Two sessions with their own copy of one account share one balance."""
        saved = await make_account()
        await set_coins(saved.get_id(), 100)

        first = Account(saved.get_id(), gateway=gateway)
        second = Account(saved.get_id(), gateway=gateway)
        assert (await first.load()).ok
        assert (await second.load()).ok
        assert first.coins == second.coins == 100

        assert (await first.remove_coins(80)).value == 20
        refused = await second.remove_coins(80)
        assert refused.kind is ErrorKind.VALUE_NOT_ENOUGH_COINS
        assert refused.error.available == 20

        assert (await second.get_coins()).value == 20
        assert second.coins == 20
        assert len(await ledger(second)) == 1

    async def test_get_coins_reads_storage(self, make_account, set_coins):
        account = await make_account()
        await set_coins(account.get_id(), 77)
        assert account.coins == 0
        assert (await account.get_coins()).value == 77


class TestPreconditions:
    async def test_unloaded_account_invalid_id(self, gateway):
        account = Account(gateway=gateway)
        assert (await account.add_coins(10)).kind is ErrorKind.INVALID_ID
        assert (await account.get_coins()).kind is ErrorKind.INVALID_ID

    async def test_deleted_account_invalid_id(self, gateway):
        account = Account(12345, gateway=gateway)
        assert (await account.add_coins(10)).kind is ErrorKind.INVALID_ID
        assert (await account.remove_coins(10)).kind is ErrorKind.INVALID_ID

    async def test_no_gateway_not_initialized(self):
        account = Account(1)
        assert (await account.add_coins(10)).kind is ErrorKind.NOT_INITIALIZED
        assert (await account.get_coins()).kind is ErrorKind.NOT_INITIALIZED

    async def test_balance_read_failure_is_db_error(self):
        broken = create_engine_from_settings("sqlite+aiosqlite:////nonexistent-dir/none.db")
        account = Account(1, gateway=SqlStorageGateway(create_session_factory(broken)))
        assert (await account.get_coins()).kind is ErrorKind.DB
        await broken.dispose()


class TestRegisterCoinsTransaction:
    async def test_registers_row_without_balance_change(self, make_account, scheduler, set_coins):
        account = await make_account()
        await set_coins(account.get_id(), 30)

        result = account.register_coins_transaction(CoinTransactionType.ADD, 30, "Reconcile")
        assert result.ok
        await scheduler.drain()

        rows = await ledger(account)
        assert len(rows) == 1
        assert rows[0].description == "Reconcile"
        assert (await account.get_coins()).value == 30

    async def test_requires_scheduler(self, gateway, make_account):
        saved = await make_account()
        account = Account(saved.get_id(), gateway=gateway)
        result = account.register_coins_transaction(CoinTransactionType.REMOVE, 5, "")
        assert result.kind is ErrorKind.NOT_INITIALIZED

    async def test_rejects_negative_amount(self, make_account):
        account = await make_account()
        result = account.register_coins_transaction(CoinTransactionType.ADD, -5)
        assert result.kind is ErrorKind.VALUE_OVERFLOW

    async def test_rejects_unknown_type(self, make_account, scheduler):
        account = await make_account()
        result = account.register_coins_transaction(99, 5)
        assert result.kind is ErrorKind.VALUE_OVERFLOW
        assert account.register_coins_transaction("ADD", 5).kind is ErrorKind.VALUE_OVERFLOW
        assert scheduler.pending() == 0

    async def test_rejects_unusable_description(self, make_account, scheduler):
        account = await make_account()
        assert account.register_coins_transaction(CoinTransactionType.ADD, 5, 7).kind is ErrorKind.VALUE_OVERFLOW
        result = account.register_coins_transaction(CoinTransactionType.ADD, 5, "x" * 256)
        assert result.kind is ErrorKind.VALUE_OVERFLOW
        assert scheduler.pending() == 0


class TestLedgerListing:
    async def test_newest_first_with_pagination(self, make_account):
        account = await make_account()
        for amount in (1, 2, 3, 4):
            (await account.add_coins(amount, f"deposit {amount}")).unwrap()

        rows = await ledger(account)
        assert [r.amount for r in rows] == [4, 3, 2, 1]

        page = (await account.get_coin_transactions(limit=2, offset=1)).unwrap()
        assert [r.amount for r in page] == [3, 2]

    async def test_ledger_sums_to_balance(self, make_account):
        account = await make_account()
        (await account.add_coins(10_000)).unwrap()
        (await account.remove_coins(2_500)).unwrap()
        (await account.add_coins(3_333)).unwrap()
        (await account.remove_coins(1_111)).unwrap()

        signed = {CoinTransactionType.ADD: 1, CoinTransactionType.REMOVE: -1}
        total = sum(signed[r.type] * r.amount for r in await ledger(account))
        assert total == (await account.get_coins()).value == 9_722

    async def test_non_integer_page_bounds_rejected(self, make_account):
        account = await make_account()
        (await account.add_coins(1)).unwrap()
        assert (await account.get_coin_transactions(limit="x")).kind is ErrorKind.VALUE_OVERFLOW
        assert (await account.get_coin_transactions(offset=1.5)).kind is ErrorKind.VALUE_OVERFLOW
