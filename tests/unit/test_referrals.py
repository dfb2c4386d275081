"""Unit tests for referral pricing and code validation."""

from datetime import datetime, timedelta, timezone

import pytest

from purchase_links.database import FF_ENABLED_KEY, ReferralStore
from purchase_links.models import ReferralCode
from purchase_links.referrals import (
    calculate_discounted_price,
    format_discount,
    normalize_code,
    validate_for_checkout,
    validate_referral_code,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def fixed(cents: int, **kwargs) -> ReferralCode:
    return ReferralCode(code="FIXED50", discount_type="fixed", discount_amount_cents=cents, **kwargs)


def percent(pct: float, **kwargs) -> ReferralCode:
    return ReferralCode(code="PCT15", discount_type="percent", discount_percent=pct, **kwargs)


@pytest.fixture
async def store(tmp_path):
    store = ReferralStore(str(tmp_path / "referrals.db"))
    await store.initialize()
    return store


@pytest.mark.unit
class TestCalculateDiscountedPrice:
    @pytest.mark.parametrize(
        "code,original,expected",
        [
            (fixed(5000), 29700, 24700),
            (fixed(50000), 29700, 0),
            (fixed(0), 29700, 29700),
            (percent(15), 29700, 25245),
            (percent(100), 29700, 0),
            (percent(0), 29700, 29700),
            # 0.5 cent rounds up
            (percent(10), 5, 4),
            (percent(10), 15, 13),
            (percent(12.5), 1000, 875),
            (fixed(5000), 0, 0),
        ],
    )
    def test_prices(self, code, original, expected):
        assert calculate_discounted_price(original, code) == expected

    def test_result_is_clamped(self):
        for original in (0, 1, 99, 29700):
            for code in (fixed(1), fixed(10**9), percent(33.3), percent(100)):
                assert 0 <= calculate_discounted_price(original, code) <= original

    def test_missing_discount_value(self):
        code = ReferralCode(code="EMPTY1", discount_type="percent")
        assert calculate_discounted_price(29700, code) == 29700


@pytest.mark.unit
class TestFormatting:
    def test_format_discount(self):
        assert format_discount(fixed(5000)) == "$50 off"
        assert format_discount(percent(15)) == "15% off"
        assert format_discount(percent(12.5)) == "12.5% off"
        assert format_discount(ReferralCode(code="EMPTY1", discount_type="fixed")) == "Discount applied"

    @pytest.mark.parametrize("cents,expected", [(1250, "$13 off"), (1249, "$12 off"), (50, "$1 off"), (250, "$3 off")])
    def test_fixed_amount_rounds_half_up(self, cents, expected):
        assert format_discount(fixed(cents)) == expected

    def test_normalize_code(self):
        assert normalize_code("  friend10 ") == "FRIEND10"
        assert normalize_code("") == ""


@pytest.mark.unit
class TestValidateReferralCode:
    async def test_valid_code_case_insensitive(self, store):
        await store.create_code(percent(15))
        result = await validate_referral_code(store, "pct15", now=NOW)
        assert result.valid is True
        assert result.code.code == "PCT15"
        assert result.discount_display == "15% off"

    @pytest.mark.parametrize("text", ["", "ab", "bad-code!", "X" * 21])
    async def test_invalid_format(self, store, text):
        result = await validate_referral_code(store, text, now=NOW)
        assert (result.valid, result.reason) == (False, "invalid_format")

    async def test_not_found(self, store):
        result = await validate_referral_code(store, "NOPE123", now=NOW)
        assert result.reason == "not_found"

    async def test_disabled(self, store):
        await store.create_code(fixed(5000, is_active=False))
        assert (await validate_referral_code(store, "FIXED50", now=NOW)).reason == "disabled"

    async def test_expired(self, store):
        await store.create_code(fixed(5000, expires_at=NOW - timedelta(days=1)))
        assert (await validate_referral_code(store, "FIXED50", now=NOW)).reason == "expired"

    async def test_not_yet_expired(self, store):
        await store.create_code(fixed(5000, expires_at=NOW + timedelta(days=1)))
        assert (await validate_referral_code(store, "FIXED50", now=NOW)).valid is True

    async def test_max_redemptions(self, store):
        await store.create_code(fixed(5000, max_redemptions=2, redemption_count=2))
        assert (await validate_referral_code(store, "FIXED50", now=NOW)).reason == "max_redemptions"

    async def test_friends_family_switch(self, store):
        await store.create_code(percent(20, tier="friends_family"))
        assert (await validate_referral_code(store, "PCT15", now=NOW)).valid is True

        await store.set_config(FF_ENABLED_KEY, False)
        assert (await validate_referral_code(store, "PCT15", now=NOW)).reason == "ff_disabled"


@pytest.mark.unit
class TestValidateForCheckout:
    async def test_self_referral_by_lead(self, store):
        await store.create_code(fixed(5000, lead_id=7))
        result = await validate_for_checkout(store, "FIXED50", lead_id=7, now=NOW)
        assert result.reason == "self_referral"

    async def test_self_referral_by_email(self, store):
        await store.create_code(fixed(5000, referrer_email="owner@acme.test"))
        result = await validate_for_checkout(store, "FIXED50", email=" Owner@Acme.test", now=NOW)
        assert result.reason == "self_referral"

    async def test_other_customer(self, store):
        await store.create_code(fixed(5000, lead_id=7, referrer_email="owner@acme.test"))
        result = await validate_for_checkout(store, "FIXED50", lead_id=8, email="buyer@shop.test", now=NOW)
        assert result.valid is True

    async def test_passes_through_invalid_result(self, store):
        result = await validate_for_checkout(store, "MISSING1", lead_id=7, now=NOW)
        assert result.reason == "not_found"
