#!/usr/bin/env python3
"""
Create all tables from the ORM models (development shortcut for `alembic upgrade head`).
Uses DATABASE_URL from env (or .env).
Run from backend dir: python scripts/init_db.py
"""
import asyncio
import os

from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

from videohub.db.session import engine, init_db  # noqa: E402


async def main():
    await init_db()
    await engine.dispose()
    print("Tables created (or already present).")


if __name__ == "__main__":
    asyncio.run(main())
