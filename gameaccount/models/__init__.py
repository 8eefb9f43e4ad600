"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all()
  2. Other modules can import from gameaccount.models directly
"""

from gameaccount.models.account import AccountRow, AccountType  # noqa: F401
from gameaccount.models.player import PlayerRow  # noqa: F401
from gameaccount.models.coin_transaction import CoinTransactionRow, CoinTransactionType  # noqa: F401
