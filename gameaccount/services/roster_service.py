"""
Roster service - the characters that belong to an account.

Read-only: the players table is owned by the character simulation, the
account store only lists it. Every query is scoped by account id, so a
character name that belongs to another account is simply not found.
"""

import logging

from sqlalchemy import select

from gameaccount.exceptions import DatabaseError, LoadingPlayersError, PlayerNotFoundError
from gameaccount.models.player import PlayerRow
from gameaccount.schemas.player import PlayerEntry
from gameaccount.storage import StorageGateway

logger = logging.getLogger(__name__)


async def load_players(gateway: StorageGateway, account_id: int) -> list[PlayerEntry]:
    """
    List all characters of an account, in whatever order storage returns them.

    Raises:
        LoadingPlayersError: If the roster query fails.
    """
    try:
        rows = await gateway.execute(
            select(PlayerRow.name, PlayerRow.deletion).where(PlayerRow.account_id == account_id)
        )
    except DatabaseError as exc:
        raise LoadingPlayersError(account_id) from exc

    logger.debug("Loaded %d players for account %s", len(rows), account_id)
    return [PlayerEntry.model_validate(row._asdict()) for row in rows]


async def load_player(gateway: StorageGateway, account_id: int, name: str) -> PlayerEntry:
    """
    Look up one character by name within an account.

    Raises:
        PlayerNotFoundError: If no character of that name is on this account.
        LoadingPlayersError: If the query fails.
    """
    try:
        rows = await gateway.execute(
            select(PlayerRow.name, PlayerRow.deletion).where(
                PlayerRow.account_id == account_id,
                PlayerRow.name == name,
            )
        )
    except DatabaseError as exc:
        raise LoadingPlayersError(account_id) from exc

    if not rows:
        raise PlayerNotFoundError(account_id, name)
    return PlayerEntry.model_validate(rows[0]._asdict())
