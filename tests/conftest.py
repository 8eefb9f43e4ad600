"""
Test fixtures for the account store test suite.

  - db_engine: fresh SQLite database file (aiosqlite) with all tables, per test
  - session_factory / gateway: storage gateway bound to that database
  - scheduler: write scheduler with fast retries, closed at teardown
  - make_account: creates and saves an account through the public API
  - set_coins / add_player: direct inserts for state the account store
    itself never writes (seed balances, roster rows)

Key design decisions:
  - Each test gets its own database file under tmp_path, so sessions use
    separate connections exactly as they would against a server database.
  - Balances are seeded with a direct UPDATE so ledger assertions only see
    the rows written by the code under test.
"""

import pytest
import pytest_asyncio
from sqlalchemy import update

from gameaccount.database import create_engine_from_settings, create_session_factory, init_db
from gameaccount.models.account import AccountRow, AccountType
from gameaccount.models.player import PlayerRow
from gameaccount.services.account_service import Account
from gameaccount.storage import SqlStorageGateway
from gameaccount.write_scheduler import WriteScheduler


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a fresh async engine with all tables for each test."""
    engine = create_engine_from_settings(f"sqlite+aiosqlite:///{tmp_path / 'accounts.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def gateway(session_factory):
    return SqlStorageGateway(session_factory)


@pytest_asyncio.fixture
async def scheduler():
    scheduler = WriteScheduler(max_attempts=3, retry_delay=0.01, max_retry_delay=0.05)
    yield scheduler
    await scheduler.close()


@pytest.fixture
def make_account(gateway, scheduler):
    """Factory: save a new account and return it loaded."""

    async def _make(
        email: str = "knight@example.com",
        password: str = "s3cret",
        account_type: AccountType = AccountType.NORMAL,
        account_id: int = 0,
    ) -> Account:
        account = Account(account_id, gateway=gateway, scheduler=scheduler)
        account.set_email(email).unwrap()
        account.set_password(password).unwrap()
        account.set_account_type(account_type).unwrap()
        (await account.save()).unwrap()
        return account

    return _make


@pytest.fixture
def set_coins(session_factory):
    """Overwrite an account's balance without writing a ledger row."""

    async def _set(account_id: int, coins: int) -> None:
        async with session_factory() as session:
            await session.execute(
                update(AccountRow).where(AccountRow.id == account_id).values(coins=coins)
            )
            await session.commit()

    return _set


@pytest.fixture
def add_player(session_factory):
    """Insert a character row for an account."""

    async def _add(account_id: int, name: str, deletion: int = 0) -> None:
        async with session_factory() as session:
            session.add(PlayerRow(account_id=account_id, name=name, deletion=deletion))
            await session.commit()

    return _add
