"""
Player table - the characters on an account (the roster).

The account store only reads this table: it lists an account's characters
and looks one up by name. `deletion` is an epoch timestamp at which the
character is scheduled to be removed; 0 means no deletion is scheduled.
"""

from sqlalchemy import BigInteger, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gameaccount.database import Base


class PlayerRow(Base):
    __tablename__ = "players"

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

    # Character names are unique server-wide
    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )

    deletion: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    account: Mapped["AccountRow"] = relationship(
        back_populates="players",
    )
