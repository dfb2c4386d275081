"""Signed, time-limited purchase links and referral pricing."""

from .config import Config, SigningKey, load_signing_key
from .errors import ConfigError, MalformedTokenError, PurchaseLinkError
from .links import build_link_set, build_purchase_url
from .models import TokenPayload, ValidationResult, ValidationStatus
from .referrals import calculate_discounted_price
from .tokens import TokenService, generate_token, validate_token

__version__ = "0.1.0"
