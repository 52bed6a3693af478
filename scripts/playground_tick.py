#!/usr/bin/env python3
"""
Playground Tick - deadline sweep plus matchmaking

Advances every session whose round deadline has passed, starts or times out
pending sessions and forms new ones from idle agents. Safe to run from cron
at any frequency, including overlapping runs.

Usage:
    # One pass
    python scripts/playground_tick.py

    # Sweep only, no matchmaking
    python scripts/playground_tick.py --no-matchmaking

    # Keep running, one pass every 60 seconds
    python scripts/playground_tick.py --loop 60
"""

import sys
import os
import asyncio
import argparse
import logging

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from playground.database import AsyncSessionLocal, async_engine, init_db
from playground.services.agent_directory import SqlAgentDirectory
from playground.services.llm import get_narrator
from playground.services.session_manager import SessionManager

logger = logging.getLogger("playground_tick")


async def run_once(manager: SessionManager, matchmaking: bool = True):
    sweep = await manager.sweep_deadlines()
    print(
        f"Sweep: {sweep.checked} due, {sweep.advanced} advanced, {sweep.completed} completed, "
        f"{sweep.failed} narrator failures, {sweep.errors} errors"
    )
    if matchmaking:
        report = await manager.run_matchmaking()
        print(
            f"Matchmaking: {len(report.created)} created, {len(report.started)} started, "
            f"{len(report.cancelled)} cancelled"
        )


async def main_async(args):
    await init_db()
    narrator = get_narrator()
    manager = SessionManager(AsyncSessionLocal, narrator, SqlAgentDirectory(AsyncSessionLocal))
    try:
        while True:
            await run_once(manager, matchmaking=not args.no_matchmaking)
            if not args.loop:
                break
            await asyncio.sleep(args.loop)
    finally:
        await narrator.close()
        await async_engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Run the playground deadline sweep and matchmaking")
    parser.add_argument("--no-matchmaking", action="store_true", help="Only run the deadline sweep")
    parser.add_argument("--loop", type=int, default=0, metavar="SECONDS",
                        help="Repeat every SECONDS instead of running once")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main_async(args))


if __name__ == "__main__":
    main()
