"""SQLite referral code store.

Holds referral codes and the referral program switches. The store is
constructed explicitly (by the app factory or a script) and passed to the code
that needs it.
"""

import asyncio
import json
import sqlite3
from datetime import datetime, timezone
from typing import Any, Optional

import aiosqlite

from .logging_utils import get_logger
from .models import ReferralCode

logger = get_logger(__name__)

# SQL Schema
SCHEMA_SQL = """
-- Referral codes
CREATE TABLE IF NOT EXISTS referral_codes (
    code TEXT PRIMARY KEY,
    tier TEXT NOT NULL CHECK(tier IN ('standard', 'friends_family', 'affiliate')),
    is_active INTEGER NOT NULL DEFAULT 1,
    discount_type TEXT NOT NULL CHECK(discount_type IN ('fixed', 'percent')),
    discount_amount_cents INTEGER,
    discount_percent REAL,
    max_redemptions INTEGER,
    redemption_count INTEGER NOT NULL DEFAULT 0,
    lead_id INTEGER,
    referrer_email TEXT,
    company_name TEXT,
    expires_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Program-wide settings (JSON values)
CREATE TABLE IF NOT EXISTS referral_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_referral_codes_lead_id ON referral_codes(lead_id);
"""

FF_ENABLED_KEY = "ff_enabled"


def _row_to_code(row: aiosqlite.Row) -> ReferralCode:
    return ReferralCode(
        code=row["code"],
        tier=row["tier"],
        is_active=bool(row["is_active"]),
        discount_type=row["discount_type"],
        discount_amount_cents=row["discount_amount_cents"],
        discount_percent=row["discount_percent"],
        max_redemptions=row["max_redemptions"],
        redemption_count=row["redemption_count"],
        lead_id=row["lead_id"],
        referrer_email=row["referrer_email"],
        company_name=row["company_name"],
        expires_at=datetime.fromisoformat(row["expires_at"]) if row["expires_at"] else None,
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class ReferralStore:
    """Async interface to the referral tables."""

    def __init__(self, db_path: str):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the schema if it does not exist."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.executescript(SCHEMA_SQL)
            await db.commit()
        logger.info(f"Referral store initialized at {self.db_path}")

    async def create_code(self, code: ReferralCode) -> None:
        """Insert a new referral code.

        Raises:
            ValueError: If the code already exists.
        """
        now = datetime.now(timezone.utc).isoformat()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    INSERT INTO referral_codes
                    (code, tier, is_active, discount_type, discount_amount_cents,
                     discount_percent, max_redemptions, redemption_count, lead_id,
                     referrer_email, company_name, expires_at, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        code.code,
                        code.tier,
                        1 if code.is_active else 0,
                        code.discount_type,
                        code.discount_amount_cents,
                        code.discount_percent,
                        code.max_redemptions,
                        code.redemption_count,
                        code.lead_id,
                        code.referrer_email,
                        code.company_name,
                        code.expires_at.isoformat() if code.expires_at else None,
                        code.created_at.isoformat(),
                        now,
                    ),
                )
                await db.commit()
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Referral code already exists: {code.code}") from e
        logger.info(f"Created referral code {code.code} ({code.tier})")

    async def get_code(self, code: str) -> Optional[ReferralCode]:
        """Get a referral code.

        Args:
            code: Normalized (upper-case) code.

        Returns:
            ReferralCode if found, None otherwise.
        """
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM referral_codes WHERE code = ?",
                (code,),
            )
            row = await cursor.fetchone()

        return _row_to_code(row) if row else None

    async def record_redemption(self, code: str) -> bool:
        """Count one redemption of a code (atomic).

        Args:
            code: Normalized code.

        Returns:
            True if recorded, False if the code is missing, inactive or exhausted.
        """
        async with self._lock:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    """
                    UPDATE referral_codes
                    SET redemption_count = redemption_count + 1,
                        updated_at = ?
                    WHERE code = ?
                      AND is_active = 1
                      AND (max_redemptions IS NULL OR redemption_count < max_redemptions)
                    """,
                    (datetime.now(timezone.utc).isoformat(), code),
                )
                await db.commit()
                recorded = cursor.rowcount == 1

        if recorded:
            logger.info(f"Recorded redemption of referral code {code}")
        else:
            logger.warning(f"Redemption refused for referral code {code}")
        return recorded

    async def set_code_active(self, code: str, active: bool) -> bool:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "UPDATE referral_codes SET is_active = ?, updated_at = ? WHERE code = ?",
                (1 if active else 0, datetime.now(timezone.utc).isoformat(), code),
            )
            await db.commit()
            return cursor.rowcount == 1

    async def get_config(self, key: str, default: Any = None) -> Any:
        """Read a program setting, falling back to ``default``."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT value FROM referral_config WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()

        return json.loads(row[0]) if row else default

    async def set_config(self, key: str, value: Any) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO referral_config (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, json.dumps(value), datetime.now(timezone.utc).isoformat()),
            )
            await db.commit()
        logger.info(f"Referral setting {key} = {value!r}")

    async def is_friends_and_family_enabled(self) -> bool:
        return bool(await self.get_config(FF_ENABLED_KEY, True))
