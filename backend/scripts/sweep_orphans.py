#!/usr/bin/env python3
"""
Delete remote assets that no video references any more.
Deleting a video removes the record first and the remote objects best-effort,
so failed remote deletes leave objects behind; run this periodically to reclaim them.
Run from backend dir: python scripts/sweep_orphans.py --grace-minutes 60
"""
import argparse
import asyncio
import os
from datetime import timedelta

from colorama import init, Fore
from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

from videohub.db.session import async_session_maker, engine  # noqa: E402
from videohub.dependencies import get_asset_store  # noqa: E402
from videohub.services.reconciliation import sweep_orphaned_assets  # noqa: E402

init()


async def main(grace_minutes: int):
    print(f"\n{Fore.CYAN}Sweeping orphaned assets (grace period {grace_minutes} min)...{Fore.RESET}")
    async with async_session_maker() as session:
        report = await sweep_orphaned_assets(
            session, get_asset_store(), grace_period=timedelta(minutes=grace_minutes)
        )
    await engine.dispose()

    print(f"Scanned: {report.scanned}, skipped (too recent): {report.skipped_recent}")
    for external_id in report.deleted:
        print(f"{Fore.GREEN}  deleted {external_id}{Fore.RESET}")
    for failure in report.failed:
        print(f"{Fore.RED}  failed {failure.external_id}: {failure.error}{Fore.RESET}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Reclaim unreferenced video/thumbnail objects")
    parser.add_argument("--grace-minutes", type=int, default=60, help="Skip objects younger than this")
    args = parser.parse_args()
    asyncio.run(main(args.grace_minutes))
