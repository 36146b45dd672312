"""
SealNote Backend — Expired Note Purge Entry Point
===================================================

One purge pass against the configured database, then exit. Meant to be
invoked by an external scheduler; it never loops or sleeps between passes.

Usage:
    python -m app.purge                    # batch size from EXPIRY_BATCH_SIZE
    python -m app.purge --batch-size 100

Exit codes:
    0  pass completed (possibly deleting nothing)
    1  storage failure; the next scheduled run retries
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from app.database import async_session_factory, dispose_engine
from app.exceptions import StorageError
from app.main import setup_logging
from app.services.expiry_service import expiry_service

logger = logging.getLogger(__name__)


async def run_purge(batch_size: Optional[int] = None) -> int:
    """Run one purge pass in its own session and release the pool afterwards."""
    try:
        async with async_session_factory() as session:
            return await expiry_service.purge_expired_notes(session, batch_size=batch_size)
    finally:
        await dispose_engine()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m app.purge",
        description="Delete expired notes (and their embeds) in batches, then exit.",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Notes fetched and deleted per batch (default: EXPIRY_BATCH_SIZE)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    if args.batch_size is not None and args.batch_size < 1:
        logger.error("--batch-size must be a positive integer")
        return 2

    try:
        deleted = asyncio.run(run_purge(args.batch_size))
    except StorageError as e:
        logger.error("Purge failed: %s | Context: %s", e.message, e.context)
        return 1

    logger.info("Purge complete: %d note(s) deleted", deleted)
    return 0


if __name__ == "__main__":
    sys.exit(main())
