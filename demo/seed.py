#!/usr/bin/env python3
"""
Demo seed script - populates the database with a sample account.

!! NOT FOR PRODUCTION !!
This script creates an account with a known password, a few characters and
some coin history. It is intended ONLY for local demos.

Usage:
    python demo/seed.py

    # Drop and recreate all tables first:
    python demo/seed.py --reset

    # Custom database:
    python demo/seed.py --database-url sqlite+aiosqlite:///./data/demo.db
"""

import argparse
import asyncio
import logging
from pathlib import Path

from gameaccount.config import configure_logging, settings
from gameaccount.database import create_engine_from_settings, create_session_factory, init_db
from gameaccount.models.account import AccountType
from gameaccount.models.player import PlayerRow
from gameaccount.services.account_service import Account
from gameaccount.storage import SqlStorageGateway
from gameaccount.write_scheduler import WriteScheduler

logger = logging.getLogger("demo.seed")

DEMO_EMAIL = "god@example.com"
DEMO_PASSWORD = "GodDemo123!"
DEMO_PLAYERS = [("Elder Druid", 0), ("Rookgaard Knight", 0), ("Retired Sorcerer", 1_900_000_000)]


async def seed(database_url: str, reset: bool) -> None:
    if database_url.startswith("sqlite") and ":///" in database_url:
        Path(database_url.split(":///", 1)[1]).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine_from_settings(database_url)
    await init_db(engine, reset=reset)
    session_factory = create_session_factory(engine)
    gateway = SqlStorageGateway(session_factory)
    scheduler = WriteScheduler()

    account = Account(email=DEMO_EMAIL, gateway=gateway, scheduler=scheduler)
    if (await account.load()).ok:
        logger.info("Account %s already exists (id %s)", DEMO_EMAIL, account.get_id())
    else:
        account.set_password(DEMO_PASSWORD).unwrap()
        account.set_account_type(AccountType.GOD).unwrap()
        account.set_premium_remaining_days(30).unwrap()
        (await account.save()).unwrap()

        async with session_factory() as session:
            session.add_all(
                PlayerRow(account_id=account.get_id(), name=name, deletion=deletion)
                for name, deletion in DEMO_PLAYERS
            )
            await session.commit()

        (await account.add_coins(500, "Welcome bonus")).unwrap()
        (await account.remove_coins(120, "Store: mount")).unwrap()
        logger.info("Created account %s (id %s)", DEMO_EMAIL, account.get_id())

    players = (await account.get_account_players()).unwrap()
    coins = (await account.get_coins()).unwrap()
    history = (await account.get_coin_transactions()).unwrap()

    print(f"Account {account.get_id()} <{account.get_email()}> {account.get_account_type().name}")
    print(f"  premium days left: {account.get_premium_remaining_days()}")
    print(f"  coins: {coins}")
    for player in players:
        suffix = " (deletion scheduled)" if player.is_pending_deletion else ""
        print(f"  character: {player.name}{suffix}")
    for txn in history:
        print(f"  {txn.timestamp:%Y-%m-%d %H:%M} {txn.type.name:<6} {txn.amount:>6}  {txn.description}")

    await scheduler.close()
    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo account")
    parser.add_argument("--database-url", default=settings.DATABASE_URL)
    parser.add_argument("--reset", action="store_true", help="Drop all tables first")
    args = parser.parse_args()

    configure_logging()
    asyncio.run(seed(args.database_url, args.reset))


if __name__ == "__main__":
    main()
