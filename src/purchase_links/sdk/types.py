"""Pydantic models returned by the purchase link SDK."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class PurchaseLinks(BaseModel):
    """URLs generated for one token."""
    purchase: str
    purchase_with_preview: str
    homepage: str
    direct_checkout: str


class CreatedLink(BaseModel):
    """Response from creating a purchase link."""
    token: str
    urls: PurchaseLinks
    expires_at: datetime
    payload: Dict[str, Any]


class LinkValidation(BaseModel):
    """Result of validating a purchase token."""
    valid: bool
    status: str  # "valid", "expired" or "invalid"
    message: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None


class ReferralQuote(BaseModel):
    """Referral code check priced against an original amount."""
    valid: bool
    reason: Optional[str] = None
    code: Optional[str] = None
    original_price: int
    discounted_price: int
    discount_display: Optional[str] = None
