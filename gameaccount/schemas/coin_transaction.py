"""
Pydantic projection of a coin ledger row.

Amounts are whole coins and always non-negative; the direction is `type`.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from gameaccount.models.coin_transaction import CoinTransactionType


class CoinTransactionRecord(BaseModel):
    """Read-only view of one coins_transactions row."""
    id: int
    account_id: int
    type: CoinTransactionType
    amount: int = Field(ge=0)
    description: str
    timestamp: datetime

    model_config = {"from_attributes": True, "frozen": True}
