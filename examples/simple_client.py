"""
Simple purchase link SDK example.

Creates a link for a business, validates it, and prices a referral code
against it. Assumes the service is running locally (`purchase-links-server`)
with ADMIN_API_KEY set and link generation enabled.
"""
import asyncio
import os

from purchase_links.sdk import PurchaseLinkClient


async def main():
    admin_key = os.getenv("ADMIN_API_KEY")

    async with PurchaseLinkClient(base_url="http://localhost:4030", admin_api_key=admin_key) as client:
        link = await client.create_link(
            business_id="biz_42",
            business_name="Acme Corp",
            price=29700,
            value=150000,
            campaign_id="spring25",
            preview_pages=4,
        )
        print(f"Purchase link: {link.urls.purchase}")
        print(f"Expires at:    {link.expires_at.isoformat()}")

        validation = await client.validate_link(link.token)
        print(f"Validation:    {validation.status}")

        quote = await client.validate_referral("FRIEND15", link.payload["price"])
        if quote.valid:
            print(f"Referral:      {quote.discount_display}, pay {quote.discounted_price / 100:.2f}")
        else:
            print(f"Referral:      rejected ({quote.reason})")


if __name__ == "__main__":
    asyncio.run(main())
