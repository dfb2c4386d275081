"""Referral code pricing and eligibility checks.

``calculate_discounted_price`` and ``format_discount`` are pure. The
validation helpers consult a ``ReferralStore`` for the code and the global
Friends & Family switch.
"""

import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Optional

from .logging_utils import get_logger
from .models import ReferralCode, ReferralValidation

if TYPE_CHECKING:
    from .database import ReferralStore

logger = get_logger(__name__)

CODE_RE = re.compile(r"^[A-Z0-9]{3,20}$")


def normalize_code(text: str) -> str:
    return (text or "").strip().upper()


def calculate_discounted_price(original_price: int, code: ReferralCode) -> int:
    """Apply a referral discount to a price in cents.

    Percentage discounts round half up to whole cents. The result is clamped to
    ``[0, original_price]``.

    Args:
        original_price: Price in cents.
        code: Referral code carrying the discount terms.

    Returns:
        Discounted price in cents.
    """
    original_price = max(0, original_price)

    if code.discount_type == "fixed" and code.discount_amount_cents:
        discount = code.discount_amount_cents
    elif code.discount_type == "percent" and code.discount_percent:
        discount = int(
            (Decimal(original_price) * Decimal(str(code.discount_percent)) / 100).quantize(
                Decimal(1), rounding=ROUND_HALF_UP
            )
        )
    else:
        return original_price

    return min(original_price, max(0, original_price - discount))


def format_discount(code: ReferralCode) -> str:
    if code.discount_type == "fixed" and code.discount_amount_cents:
        dollars = (Decimal(code.discount_amount_cents) / 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return f"${dollars} off"
    if code.discount_type == "percent" and code.discount_percent:
        return f"{code.discount_percent:g}% off"
    return "Discount applied"


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def validate_referral_code(
    store: "ReferralStore", code_text: str, now: Optional[datetime] = None
) -> ReferralValidation:
    """Check whether a referral code can currently be used.

    Args:
        store: Referral code store.
        code_text: Code as typed by the customer (case-insensitive).
        now: Current time. Defaults to the wall clock (UTC).

    Returns:
        Validation result with the code and display text if valid.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    code_text = normalize_code(code_text)

    if not CODE_RE.match(code_text):
        return ReferralValidation(valid=False, reason="invalid_format")

    code = await store.get_code(code_text)
    if not code:
        return ReferralValidation(valid=False, reason="not_found")

    if not code.is_active:
        return ReferralValidation(valid=False, reason="disabled")

    if code.expires_at and _as_utc(code.expires_at) < now:
        return ReferralValidation(valid=False, reason="expired")

    if code.max_redemptions is not None and code.redemption_count >= code.max_redemptions:
        return ReferralValidation(valid=False, reason="max_redemptions")

    if code.tier == "friends_family" and not await store.is_friends_and_family_enabled():
        return ReferralValidation(valid=False, reason="ff_disabled")

    return ReferralValidation(valid=True, code=code, discount_display=format_discount(code))


async def validate_for_checkout(
    store: "ReferralStore",
    code_text: str,
    lead_id: Optional[int] = None,
    email: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ReferralValidation:
    """Validate a code for checkout, additionally rejecting self-referrals."""
    result = await validate_referral_code(store, code_text, now=now)
    if not result.valid or not result.code:
        return result

    code = result.code

    if lead_id is not None and code.lead_id is not None and lead_id == code.lead_id:
        logger.info(f"Self-referral rejected for code {code.code} (lead {lead_id})")
        return ReferralValidation(valid=False, reason="self_referral")

    if email and code.referrer_email and email.strip().lower() == code.referrer_email.strip().lower():
        logger.info(f"Self-referral rejected for code {code.code} (email match)")
        return ReferralValidation(valid=False, reason="self_referral")

    return result
