"""
Coin transaction table - the append-only coin ledger.

Every change of an account's coin balance creates exactly one row here, in
the same DB transaction as the balance update:

  - ADD:    coins credited to the account
  - REMOVE: coins debited from the account

Why amount is never negative:
  The direction lives in `type`; `amount` is always the absolute number of
  coins moved. Rows are never updated or deleted by the account store.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gameaccount.database import Base


class CoinTransactionType(enum.IntEnum):
    ADD = 1
    REMOVE = 2


class CoinTransactionRow(Base):
    __tablename__ = "coins_transactions"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_coins_transactions_non_negative_amount"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    # CoinTransactionType value
    type: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
