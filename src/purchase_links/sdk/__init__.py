"""Async client for the purchase link service."""

from .client import PurchaseLinkClient
from .types import CreatedLink, LinkValidation, PurchaseLinks, ReferralQuote

__all__ = ["PurchaseLinkClient", "CreatedLink", "LinkValidation", "PurchaseLinks", "ReferralQuote"]
