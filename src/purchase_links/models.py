"""Shared data models for the purchase link service.

All Pydantic models used across the token core, the referral pricing and the
HTTP layer.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TokenPayload(BaseModel):
    """The signed unit of data carried by a purchase link.

    Prices are integers in minor currency units (cents). Timestamps are unix
    seconds.
    """

    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    business_id: str = Field(min_length=1, description="Opaque business identifier")
    business_name: str = Field(min_length=1, description="Display name")
    price: int = Field(ge=0, description="Report price in cents")
    value: int = Field(ge=0, description="Estimated customer value in cents, for display")
    campaign_id: str = Field(default="", description="Opaque campaign identifier, may be empty")
    preview_pages: int = Field(default=0, ge=0, description="Pages shown in the report preview")
    issued_at: int = Field(ge=0, description="Issue time (unix seconds)")
    expires_at: int = Field(ge=0, description="issued_at + TTL (unix seconds)")
    nonce: str = Field(default="", pattern=r"^[0-9a-f]*$", description="Per-token random hex")

    @model_validator(mode="after")
    def _check_window(self) -> "TokenPayload":
        if self.expires_at < self.issued_at:
            raise ValueError("expires_at must not precede issued_at")
        return self


class ValidationStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    TAMPERED = "tampered"
    MALFORMED = "malformed"


INVALID_LINK_MESSAGE = "This link is invalid. Please check the link or request a new one."
EXPIRED_LINK_MESSAGE = "This link has expired. Please request a new one."


class ValidationResult(BaseModel):
    """Outcome of validating a purchase token.

    ``payload`` is only set for VALID and EXPIRED: a tampered or malformed
    token has no trustworthy payload to show.
    """

    model_config = ConfigDict(frozen=True)

    status: ValidationStatus
    payload: Optional[TokenPayload] = None

    @classmethod
    def valid(cls, payload: TokenPayload) -> "ValidationResult":
        return cls(status=ValidationStatus.VALID, payload=payload)

    @classmethod
    def expired(cls, payload: TokenPayload) -> "ValidationResult":
        return cls(status=ValidationStatus.EXPIRED, payload=payload)

    @classmethod
    def tampered(cls) -> "ValidationResult":
        return cls(status=ValidationStatus.TAMPERED)

    @classmethod
    def malformed(cls) -> "ValidationResult":
        return cls(status=ValidationStatus.MALFORMED)

    @property
    def is_valid(self) -> bool:
        return self.status is ValidationStatus.VALID

    @property
    def public_status(self) -> Literal["valid", "expired", "invalid"]:
        """Status safe to show users; tampered and malformed are indistinguishable."""
        if self.status is ValidationStatus.VALID:
            return "valid"
        if self.status is ValidationStatus.EXPIRED:
            return "expired"
        return "invalid"

    @property
    def public_message(self) -> Optional[str]:
        if self.status is ValidationStatus.VALID:
            return None
        if self.status is ValidationStatus.EXPIRED:
            return EXPIRED_LINK_MESSAGE
        return INVALID_LINK_MESSAGE


class IssuedToken(BaseModel):
    """A freshly generated token together with the payload it signs."""

    model_config = ConfigDict(frozen=True)

    token: str
    payload: TokenPayload


class LinkSet(BaseModel):
    """The URLs handed out for a single token."""

    purchase: str
    purchase_with_preview: str
    homepage: str
    direct_checkout: str


class ReferralCode(BaseModel):
    """Referral code terms as stored in the referral database."""

    code: str = Field(pattern=r"^[A-Z0-9]{3,20}$")
    tier: Literal["standard", "friends_family", "affiliate"] = "standard"
    is_active: bool = True
    discount_type: Literal["fixed", "percent"]
    discount_amount_cents: Optional[int] = Field(default=None, ge=0)
    discount_percent: Optional[float] = Field(default=None, ge=0, le=100)
    max_redemptions: Optional[int] = Field(default=None, ge=0)
    redemption_count: int = Field(default=0, ge=0)
    lead_id: Optional[int] = None
    referrer_email: Optional[str] = None
    company_name: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ReferralValidation(BaseModel):
    """Result of checking whether a referral code may be used."""

    valid: bool
    reason: Optional[
        Literal[
            "invalid_format",
            "not_found",
            "disabled",
            "expired",
            "max_redemptions",
            "ff_disabled",
            "self_referral",
        ]
    ] = None
    code: Optional[ReferralCode] = None
    discount_display: Optional[str] = None


# HTTP request/response models


class GenerateLinkRequest(BaseModel):
    """Body of POST /admin/links."""

    business_id: str = Field(min_length=1)
    business_name: str = Field(min_length=1)
    price: int = Field(ge=0)
    value: int = Field(default=0, ge=0)
    campaign_id: str = Field(default="")
    preview_pages: int = Field(default=0, ge=0)


class GenerateLinkResponse(BaseModel):
    success: bool = True
    token: str
    urls: LinkSet
    expires_at: datetime
    payload: TokenPayload


class LinkValidationResponse(BaseModel):
    """Body returned by GET /links/validate."""

    valid: bool
    status: Literal["valid", "expired", "invalid"]
    message: Optional[str] = None
    payload: Optional[TokenPayload] = None


class ReferralQuoteRequest(BaseModel):
    """Body of POST /referrals/validate."""

    code: str
    price: int = Field(ge=0, description="Original price in cents")
    lead_id: Optional[int] = None
    email: Optional[str] = None


class ReferralQuoteResponse(BaseModel):
    valid: bool
    reason: Optional[str] = None
    code: Optional[str] = None
    original_price: int
    discounted_price: int
    discount_display: Optional[str] = None
