"""Core purchase link client."""

import logging
from typing import Optional

import httpx

from .types import CreatedLink, LinkValidation, ReferralQuote

logger = logging.getLogger(__name__)


class PurchaseLinkClient:
    """Main entry point for talking to the purchase link service."""

    def __init__(
        self,
        base_url: str = "http://localhost:4030",
        admin_api_key: Optional[str] = None,
        timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            base_url: The URL of the purchase link service.
            admin_api_key: API key for link generation (admin only).
            timeout: Request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.admin_api_key = admin_api_key

        # Initialize async HTTP client
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def close(self):
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def create_link(
        self,
        business_id: str,
        business_name: str,
        price: int,
        value: int = 0,
        campaign_id: str = "",
        preview_pages: int = 0,
    ) -> CreatedLink:
        """Generate a signed purchase link.

        Args:
            business_id: Business identifier.
            business_name: Display name shown on the purchase page.
            price: Report price in cents.
            value: Estimated customer value in cents.
            campaign_id: Optional campaign identifier.
            preview_pages: Number of preview pages.

        Returns:
            The token, its URLs and expiry.

        Raises:
            ValueError: If no admin API key is configured.
            httpx.HTTPStatusError: If the service refuses the request.
        """
        if not self.admin_api_key:
            raise ValueError("admin_api_key is required to create links")

        response = await self._http.post(
            "/admin/links",
            json={
                "business_id": business_id,
                "business_name": business_name,
                "price": price,
                "value": value,
                "campaign_id": campaign_id,
                "preview_pages": preview_pages,
            },
            headers={"X-Admin-Api-Key": self.admin_api_key},
        )
        if response.status_code != 200:
            logger.error(f"Link creation failed: {response.status_code} - {response.text}")
            response.raise_for_status()

        return CreatedLink(**response.json())

    async def validate_link(self, token: str) -> LinkValidation:
        """Validate a purchase token.

        Invalid and expired tokens come back as a ``LinkValidation`` with
        ``valid=False``; only transport and server errors raise.
        """
        response = await self._http.get("/links/validate", params={"utm": token})
        if response.status_code not in (200, 400):
            logger.error(f"Link validation failed: {response.status_code} - {response.text}")
            response.raise_for_status()

        return LinkValidation(**response.json())

    async def validate_referral(
        self,
        code: str,
        price: int,
        lead_id: Optional[int] = None,
        email: Optional[str] = None,
    ) -> ReferralQuote:
        """Check a referral code and get the discounted price."""
        body = {"code": code, "price": price}
        if lead_id is not None:
            body["lead_id"] = lead_id
        if email:
            body["email"] = email

        response = await self._http.post("/referrals/validate", json=body)
        if response.status_code != 200:
            logger.error(f"Referral check failed: {response.status_code} - {response.text}")
            response.raise_for_status()

        return ReferralQuote(**response.json())
