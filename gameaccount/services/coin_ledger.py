"""
Coin ledger - balance changes with an audit trail.

THIS IS THE ONLY CODE THAT CHANGES accounts.coins. It handles:
  - Adding and removing coins with overflow/underflow protection
  - Writing one coins_transactions row per successful balance change
  - Reading the balance and the ledger back

Atomicity:
  A balance change and its ledger row are written inside the SAME database
  transaction. The balance check is part of the UPDATE itself:

      UPDATE accounts SET coins = coins - :amount
       WHERE id = :id AND coins >= :amount
   RETURNING coins

  so two sessions holding separate in-memory copies of one account still
  serialize correctly at the storage tier: whichever commits second sees the
  first one's balance. When no row is updated the transaction rolls back and
  neither the balance nor the ledger changes.

Reconciliation:
  record_coin_transaction() writes a ledger row without touching the
  balance. It is only meant for repairing the audit trail and is normally
  run through the write scheduler.
"""

import logging

from sqlalchemy import false, select, update

from gameaccount.config import settings
from gameaccount.exceptions import (
    CoinOverflowError,
    InvalidCoinArgumentError,
    InvalidIdError,
    NotEnoughCoinsError,
)
from gameaccount.models.account import AccountRow
from gameaccount.models.coin_transaction import CoinTransactionRow, CoinTransactionType
from gameaccount.schemas.coin_transaction import CoinTransactionRecord
from gameaccount.storage import StorageGateway

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LENGTH = 255


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_amount(account_id: int, amount: int, coins_max: int | None = None) -> int:
    """Reject amounts that are not whole, non-negative coins (at most coins_max when given)."""
    if not _is_int(amount) or amount < 0 or (coins_max is not None and amount > coins_max):
        raise CoinOverflowError(account_id, amount, settings.COINS_MAX if coins_max is None else coins_max)
    return amount


def coin_transaction_type(value: CoinTransactionType | int) -> CoinTransactionType:
    if not _is_int(value):
        raise InvalidCoinArgumentError("coin transaction type", value)
    try:
        return CoinTransactionType(value)
    except ValueError as exc:
        raise InvalidCoinArgumentError("coin transaction type", value) from exc


def validate_description(description: str | None) -> str:
    """None means no memo. Longer memos are rejected, never truncated."""
    if description is None:
        return ""
    if not isinstance(description, str) or len(description) > DESCRIPTION_MAX_LENGTH:
        raise InvalidCoinArgumentError("coin transaction description", description)
    return description


def coin_transaction_row(
    account_id: int,
    txn_type: CoinTransactionType,
    amount: int,
    description: str = "",
) -> CoinTransactionRow:
    return CoinTransactionRow(
        account_id=account_id,
        type=int(txn_type),
        amount=amount,
        description=description or "",
    )


async def fetch_balance(gateway: StorageGateway, account_id: int) -> int:
    """
    Read the current balance from storage.

    Raises:
        InvalidIdError: If the account doesn't exist.
        DatabaseError: If the read fails.
    """
    rows = await gateway.execute(
        select(AccountRow.coins).where(AccountRow.id == account_id)
    )
    if not rows:
        raise InvalidIdError(f"Account {account_id} not found")
    return int(rows[0].coins)


async def apply_coin_change(
    gateway: StorageGateway,
    account_id: int,
    txn_type: CoinTransactionType,
    amount: int,
    description: str = "",
    coins_max: int = settings.COINS_MAX,
) -> int:
    """
    Atomically add or remove coins and append the matching ledger row.

    Args:
        gateway: Storage gateway.
        account_id: The account to credit/debit.
        txn_type: CoinTransactionType.ADD or CoinTransactionType.REMOVE.
        amount: Whole coins, 0..coins_max for ADD. Any non-negative amount
            for REMOVE; one larger than the balance is refused.
        description: Memo stored on the ledger row, at most
            DESCRIPTION_MAX_LENGTH characters.
        coins_max: Largest balance the account may hold.

    Returns:
        The balance after the change.

    Raises:
        CoinOverflowError: amount negative or not an int, or ADD would pass coins_max.
        InvalidCoinArgumentError: unknown txn_type or unusable description.
        NotEnoughCoinsError: REMOVE of more coins than the balance.
        InvalidIdError: The account doesn't exist.
        DatabaseError: The storage call failed.
    """
    txn_type = coin_transaction_type(txn_type)
    description = validate_description(description)

    if txn_type is CoinTransactionType.ADD:
        validate_amount(account_id, amount, coins_max)
        within_bounds = AccountRow.coins <= coins_max - amount
        new_coins = AccountRow.coins + amount
    elif validate_amount(account_id, amount) > coins_max:
        # No stored balance exceeds coins_max, so the update matches nothing
        within_bounds = false()
        new_coins = AccountRow.coins
    else:
        within_bounds = AccountRow.coins >= amount
        new_coins = AccountRow.coins - amount

    async with gateway.transaction() as session:
        result = await session.execute(
            update(AccountRow)
            .where(AccountRow.id == account_id, within_bounds)
            .values(coins=new_coins)
            .returning(AccountRow.coins)
            .execution_options(synchronize_session=False)
        )
        balance = result.scalar_one_or_none()

        if balance is None:
            current = await session.scalar(
                select(AccountRow.coins).where(AccountRow.id == account_id)
            )
            if current is None:
                raise InvalidIdError(f"Account {account_id} not found")
            logger.warning(
                "Refused %s of %d coins on account %s (balance %d)",
                txn_type.name,
                amount,
                account_id,
                current,
            )
            if txn_type is CoinTransactionType.ADD:
                raise CoinOverflowError(account_id, amount, coins_max, balance=current)
            raise NotEnoughCoinsError(account_id, amount, current)

        session.add(coin_transaction_row(account_id, txn_type, amount, description))

    logger.info(
        "%s %d coins on account %s, balance now %d",
        txn_type.name,
        amount,
        account_id,
        balance,
    )
    return balance


async def record_coin_transaction(
    gateway: StorageGateway,
    account_id: int,
    txn_type: CoinTransactionType,
    amount: int,
    description: str = "",
) -> None:
    """Append a ledger row without changing the balance (reconciliation only)."""
    txn_type = coin_transaction_type(txn_type)
    validate_amount(account_id, amount)
    description = validate_description(description)
    async with gateway.transaction() as session:
        session.add(coin_transaction_row(account_id, txn_type, amount, description))
    logger.info(
        "Recorded %s of %d coins on account %s without balance change",
        txn_type.name,
        amount,
        account_id,
    )


async def list_coin_transactions(
    gateway: StorageGateway,
    account_id: int,
    limit: int = 50,
    offset: int = 0,
) -> list[CoinTransactionRecord]:
    """List an account's ledger rows, newest first. limit is clamped to 1..100."""
    for name, value in (("limit", limit), ("offset", offset)):
        if not _is_int(value):
            raise InvalidCoinArgumentError(f"ledger page {name}", value)
    limit = max(1, min(100, limit))
    offset = max(0, offset)
    rows = await gateway.execute(
        select(
            CoinTransactionRow.id,
            CoinTransactionRow.account_id,
            CoinTransactionRow.type,
            CoinTransactionRow.amount,
            CoinTransactionRow.description,
            CoinTransactionRow.timestamp,
        )
        .where(CoinTransactionRow.account_id == account_id)
        .order_by(CoinTransactionRow.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return [CoinTransactionRecord.model_validate(row._asdict()) for row in rows]
