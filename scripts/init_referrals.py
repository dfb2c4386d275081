"""Referral database initialization script.

Creates the referral schema and optionally seeds codes from a JSON file
containing a list of referral code objects.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from purchase_links.config import config
from purchase_links.database import ReferralStore
from purchase_links.logging_utils import get_logger, setup_logging
from purchase_links.models import ReferralCode

setup_logging(config.log_level, config.log_format)
logger = get_logger(__name__)


async def main(seed_path: str = None) -> int:
    """Initialize the referral store and seed codes."""
    store = ReferralStore(config.database_path)
    logger.info(f"Initializing referral database at {store.db_path}")
    await store.initialize()

    if not seed_path:
        logger.info("No seed file given; schema only")
        return 0

    try:
        entries = json.loads(Path(seed_path).read_text())
        codes = [ReferralCode(**entry) for entry in entries]
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"Could not load seed file {seed_path}: {e}")
        return 1

    created = 0
    for code in codes:
        try:
            await store.create_code(code)
            created += 1
        except ValueError:
            logger.info(f"Referral code already exists: {code.code}")

    logger.info(f"Seeded {created} of {len(codes)} referral codes")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the referral database")
    parser.add_argument("--seed", help="JSON file with referral codes")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.seed)))
