import os

import pytest

# Set environment before purchase_links.config is imported by any test
os.environ.setdefault("UTM_SECRET_KEY", "conftest-secret-key-0123456789abcdef0123")
os.environ.setdefault("ADMIN_API_KEY", "conftest-admin-key")

from purchase_links.config import SigningKey  # noqa: E402

TEST_SECRET = b"unit-test-secret-0123456789abcdef-0123456789"
OTHER_SECRET = b"a-completely-different-secret-9876543210fedcba"


@pytest.fixture
def signing_key() -> SigningKey:
    return SigningKey(TEST_SECRET)


@pytest.fixture
def other_key() -> SigningKey:
    return SigningKey(OTHER_SECRET)


@pytest.fixture
def acme_fields() -> dict:
    """Purchase terms for the reference business."""
    return {
        "business_id": "biz_42",
        "business_name": "Acme Corp",
        "price": 29700,
        "value": 150000,
        "campaign_id": "spring25",
        "preview_pages": 4,
    }
