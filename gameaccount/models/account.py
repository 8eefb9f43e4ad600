"""
Account table - one game-server account.

Each row has:
  - A numeric id (autoincrement) and a unique email used as the login key
  - The password as supplied by the authentication layer (opaque here)
  - Premium time: `lastday` (epoch seconds, the canonical value) and
    `premdays` (derived from `lastday` whenever the account is saved)
  - A privilege level (`type`, see AccountType)
  - The coin balance

Balance management:
  `coins` is only ever changed by the coin ledger, which updates it in the
  same DB transaction that inserts the matching coins_transactions row. A
  CHECK constraint keeps the balance non-negative at the database level too.
"""

import enum
import time

from sqlalchemy import BigInteger, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gameaccount.database import Base


class AccountType(enum.IntEnum):
    """
    Privilege level of an account, ordered from least to most privileged.

    IntEnum so levels compare naturally (`GAME_MASTER > TUTOR`) and are
    stored as plain integers.
    """
    NORMAL = 1
    TUTOR = 2
    SENIOR_TUTOR = 3
    GAME_MASTER = 4
    GOD = 5


class AccountRow(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint("coins >= 0", name="ck_accounts_non_negative_coins"),
        CheckConstraint("premdays >= 0", name="ck_accounts_non_negative_premdays"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Login key - must be unique and indexed for fast lookups
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )

    premdays: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Epoch seconds; 0 means no premium
    lastday: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    type: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=int(AccountType.NORMAL),
    )

    # 64-bit: COINS_MAX (2**32 - 1) does not fit a 32-bit INTEGER column
    coins: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    creation: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=lambda: int(time.time()),
    )

    # --- Relationships ---
    players: Mapped[list["PlayerRow"]] = relationship(
        back_populates="account",
    )
