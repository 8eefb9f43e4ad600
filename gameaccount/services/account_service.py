"""
Account service - the in-memory account record and its persistence.

An Account is created empty, by id, or by email, then loaded from storage.
Its fields can be changed in memory any number of times; nothing reaches
the database until save() (synchronous) or save_later() (queued on the
write scheduler). Coins are the exception: they are never set directly and
only change through the coin ledger, which writes the balance and its audit
row in one storage transaction.

Collaborators:
  The storage gateway and write scheduler are passed in explicitly, at
  construction or through the setters. An operation whose collaborator is
  missing fails with NOT_INITIALIZED.

Results:
  Every fallible public method returns an AccountResult. Getters of
  in-memory fields return plain values; they cannot fail.

Premium time:
  The premium last day (epoch seconds) is the single source of truth. The
  remaining-days value is always derived from it against the clock:

      remaining = max(0, ceil((last_day - now) / 86400))

  set_premium_remaining_days(d) moves last_day to now + d days (or 0).
  save() stores both columns so readers of either agree.

Concurrency:
  One Account instance must not be mutated from several tasks at once.
  Sessions own their own instance; two instances of the same account only
  coordinate through storage.
"""

import functools
import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import ColumnElement, select, update

from gameaccount.config import settings
from gameaccount.exceptions import (
    DatabaseError,
    InvalidAccountTypeError,
    InvalidEmailError,
    InvalidIdError,
    InvalidLastDayError,
    InvalidPasswordError,
    NotInitializedError,
    NullReferenceError,
)
from gameaccount.models.account import AccountRow, AccountType
from gameaccount.models.coin_transaction import CoinTransactionType
from gameaccount.result import returns_result
from gameaccount.schemas.coin_transaction import CoinTransactionRecord
from gameaccount.schemas.player import PlayerEntry
from gameaccount.services import coin_ledger, roster_service
from gameaccount.storage import StorageGateway
from gameaccount.write_scheduler import WriteScheduler

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400

_ACCOUNT_COLUMNS = (
    AccountRow.id,
    AccountRow.email,
    AccountRow.password,
    AccountRow.premdays,
    AccountRow.lastday,
    AccountRow.type,
    AccountRow.coins,
)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


async def upsert_account(gateway: StorageGateway, account_id: int, values: dict[str, Any]) -> int:
    """
    Write an account row and return its id.

    account_id 0 inserts a new row and returns the generated id. Otherwise
    the row is updated by id, or inserted with that id when missing.
    """
    async with gateway.transaction() as session:
        if account_id:
            result = await session.execute(
                update(AccountRow)
                .where(AccountRow.id == account_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                session.add(AccountRow(id=account_id, coins=0, **values))
            return account_id

        row = AccountRow(coins=0, **values)
        session.add(row)
        await session.flush()
        return row.id


class Account:
    """One game-server account, materialized in memory."""

    def __init__(
        self,
        account_id: int = 0,
        email: str = "",
        *,
        gateway: StorageGateway | None = None,
        scheduler: WriteScheduler | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._id = account_id
        self._email = email
        self._password = ""
        self._premium_last_day = 0
        self._account_type = AccountType.NORMAL
        self._coins = 0
        self._gateway = gateway
        self._scheduler = scheduler
        self._clock = clock

    def __repr__(self) -> str:
        return (
            f"Account(id={self._id!r}, email={self._email!r}, "
            f"type={self._account_type.name}, coins={self._coins})"
        )

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @returns_result
    def set_storage_gateway(self, gateway: StorageGateway) -> None:
        if gateway is None:
            raise NullReferenceError("storage gateway")
        self._gateway = gateway

    @returns_result
    def set_write_scheduler(self, scheduler: WriteScheduler) -> None:
        if scheduler is None:
            raise NullReferenceError("write scheduler")
        self._scheduler = scheduler

    def _require_gateway(self) -> StorageGateway:
        if self._gateway is None:
            raise NotInitializedError("Storage gateway not set")
        return self._gateway

    def _require_scheduler(self) -> WriteScheduler:
        if self._scheduler is None:
            raise NotInitializedError("Write scheduler not set")
        return self._scheduler

    def _require_id(self) -> int:
        if not self._id:
            raise InvalidIdError("Account has no id; load or save it first")
        return self._id

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    @returns_result
    async def load(self) -> None:
        """Load by the id given at construction, else by the email."""
        if self._id:
            await self._load_by_id(self._id)
        elif self._email:
            await self._load_by_email(self._email)
        else:
            raise NotInitializedError("Account has neither an id nor an email to load by")

    @returns_result
    async def load_by_id(self, account_id: int) -> None:
        await self._load_by_id(account_id)

    @returns_result
    async def load_by_email(self, email: str) -> None:
        await self._load_by_email(email)

    async def _load_by_id(self, account_id: int) -> None:
        if not _is_int(account_id) or account_id <= 0:
            raise InvalidIdError(f"Invalid account id: {account_id!r}")
        await self._fetch(AccountRow.id == account_id, f"id {account_id}")

    async def _load_by_email(self, email: str) -> None:
        if not isinstance(email, str) or not email.strip():
            raise InvalidEmailError("Cannot load an account by an empty email")
        await self._fetch(AccountRow.email == email.strip(), f"email {email!r}")

    async def _fetch(self, criterion: ColumnElement[bool], key: str) -> None:
        gateway = self._require_gateway()
        rows = await gateway.execute(select(*_ACCOUNT_COLUMNS).where(criterion))
        if not rows:
            raise InvalidIdError(f"No account with {key}")
        row = rows[0]

        # Convert everything before assigning so a bad row leaves the record untouched
        try:
            account_type = AccountType(row.type)
        except ValueError as exc:
            raise DatabaseError(f"Account {row.id} has unknown type {row.type!r}") from exc
        last_day = int(row.lastday)
        if last_day <= 0 and row.premdays > 0:
            # Rows written by tools that only know premdays
            last_day = int(self._clock()) + int(row.premdays) * SECONDS_PER_DAY

        self._id = int(row.id)
        self._email = row.email
        self._password = row.password
        self._premium_last_day = max(0, last_day)
        self._account_type = account_type
        self._coins = int(row.coins)
        logger.debug("Loaded account %s by %s", self._id, key)

    def _row_values(self) -> dict[str, Any]:
        return {
            "email": self._email,
            "password": self._password,
            "premdays": self.get_premium_remaining_days(),
            "lastday": self._premium_last_day,
            "type": int(self._account_type),
        }

    @returns_result
    async def save(self) -> None:
        """Upsert every field except coins. Does not reload."""
        gateway = self._require_gateway()
        if not self._email:
            raise InvalidEmailError("Cannot save an account without an email")
        self._id = await upsert_account(gateway, self._id, self._row_values())
        logger.debug("Saved account %s", self._id)

    @returns_result
    def save_later(self) -> None:
        """Queue a snapshot of the current fields for an ordered background upsert."""
        gateway = self._require_gateway()
        scheduler = self._require_scheduler()
        account_id = self._require_id()
        if not self._email:
            raise InvalidEmailError("Cannot save an account without an email")
        scheduler.enqueue(
            account_id,
            functools.partial(upsert_account, gateway, account_id, self._row_values()),
        )

    # ------------------------------------------------------------------
    # Field accessors
    # ------------------------------------------------------------------

    def get_id(self) -> int:
        return self._id

    def get_email(self) -> str:
        return self._email

    @returns_result
    def set_email(self, email: str) -> None:
        if not isinstance(email, str) or not email.strip():
            raise InvalidEmailError("Email must not be empty")
        if len(email.strip()) > settings.EMAIL_MAX_LENGTH:
            raise InvalidEmailError(f"Email longer than {settings.EMAIL_MAX_LENGTH} characters")
        self._email = email.strip()

    def get_password(self) -> str:
        return self._password

    @returns_result
    def set_password(self, password: str) -> None:
        if not isinstance(password, str) or not password:
            raise InvalidPasswordError("Password must not be empty")
        if len(password) > settings.PASSWORD_MAX_LENGTH:
            raise InvalidPasswordError(
                f"Password longer than {settings.PASSWORD_MAX_LENGTH} characters"
            )
        self._password = password

    def get_premium_remaining_days(self) -> int:
        remaining = self._premium_last_day - self._clock()
        if remaining <= 0:
            return 0
        return math.ceil(remaining / SECONDS_PER_DAY)

    @returns_result
    def set_premium_remaining_days(self, days: int) -> None:
        if not _is_int(days) or days < 0:
            raise InvalidLastDayError(days)
        self._premium_last_day = int(self._clock()) + days * SECONDS_PER_DAY if days else 0

    def get_premium_last_day(self) -> int:
        """Epoch seconds of the last premium day; 0 when there is no premium."""
        return self._premium_last_day

    @returns_result
    def set_premium_last_day(self, last_day: int | datetime) -> None:
        """Accepts epoch seconds or a datetime (naive datetimes are read as UTC)."""
        if isinstance(last_day, datetime):
            if last_day.tzinfo is None:
                last_day = last_day.replace(tzinfo=timezone.utc)
            last_day = int(last_day.timestamp())
        if not _is_int(last_day) or last_day < 0:
            raise InvalidLastDayError(last_day)
        self._premium_last_day = last_day

    def get_account_type(self) -> AccountType:
        return self._account_type

    @returns_result
    def set_account_type(self, account_type: AccountType | int) -> None:
        if not _is_int(account_type):
            raise InvalidAccountTypeError(account_type)
        try:
            self._account_type = AccountType(account_type)
        except ValueError as exc:
            raise InvalidAccountTypeError(account_type) from exc

    # ------------------------------------------------------------------
    # Coins
    # ------------------------------------------------------------------

    @property
    def coins(self) -> int:
        """Balance as of the last load or ledger call; get_coins() asks storage."""
        return self._coins

    @returns_result
    async def get_coins(self) -> int:
        gateway = self._require_gateway()
        self._coins = await coin_ledger.fetch_balance(gateway, self._require_id())
        return self._coins

    @returns_result
    async def add_coins(self, amount: int, description: str = "") -> int:
        """
        Credit coins and write the ADD ledger row. Returns the new balance.

        A description longer than 255 characters is rejected with
        VALUE_OVERFLOW rather than shortened.
        """
        gateway = self._require_gateway()
        self._coins = await coin_ledger.apply_coin_change(
            gateway,
            self._require_id(),
            CoinTransactionType.ADD,
            amount,
            description,
            coins_max=settings.COINS_MAX,
        )
        return self._coins

    @returns_result
    async def remove_coins(self, amount: int, description: str = "") -> int:
        gateway = self._require_gateway()
        self._coins = await coin_ledger.apply_coin_change(
            gateway,
            self._require_id(),
            CoinTransactionType.REMOVE,
            amount,
            description,
            coins_max=settings.COINS_MAX,
        )
        return self._coins

    @returns_result
    def register_coins_transaction(
        self,
        txn_type: CoinTransactionType,
        amount: int,
        description: str = "",
    ) -> None:
        """
        Queue a ledger row that does not change the balance.

        Reserved for reconciling the audit trail with a balance change that
        was already applied elsewhere; add_coins/remove_coins write their own
        rows.
        """
        gateway = self._require_gateway()
        scheduler = self._require_scheduler()
        account_id = self._require_id()
        txn_type = coin_ledger.coin_transaction_type(txn_type)
        coin_ledger.validate_amount(account_id, amount, settings.COINS_MAX)
        description = coin_ledger.validate_description(description)
        scheduler.enqueue(
            account_id,
            functools.partial(
                coin_ledger.record_coin_transaction,
                gateway,
                account_id,
                txn_type,
                amount,
                description,
            ),
        )

    @returns_result
    async def get_coin_transactions(self, limit: int = 50, offset: int = 0) -> list[CoinTransactionRecord]:
        gateway = self._require_gateway()
        return await coin_ledger.list_coin_transactions(gateway, self._require_id(), limit, offset)

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    @returns_result
    async def get_account_players(self) -> list[PlayerEntry]:
        gateway = self._require_gateway()
        return await roster_service.load_players(gateway, self._require_id())

    @returns_result
    async def get_account_player(self, name: str) -> PlayerEntry:
        gateway = self._require_gateway()
        return await roster_service.load_player(gateway, self._require_id(), name)
