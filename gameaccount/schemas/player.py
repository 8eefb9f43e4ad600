"""Pydantic projection of a roster entry."""

from pydantic import BaseModel


class PlayerEntry(BaseModel):
    """A character on an account. `deletion` is 0 unless a deletion is scheduled."""
    name: str
    deletion: int = 0

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def is_pending_deletion(self) -> bool:
        return self.deletion > 0
