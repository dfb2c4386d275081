"""Generate a signed purchase link from the command line.

Usage:
    python scripts/generate_link.py biz_42 "Acme Corp" --price 29700 --value 150000
"""

import argparse
import json
import sys
from datetime import datetime, timezone

from purchase_links.config import config, load_signing_key
from purchase_links.errors import ConfigError
from purchase_links.links import build_link_set
from purchase_links.logging_utils import get_logger, setup_logging
from purchase_links.tokens import TokenService

setup_logging(config.log_level, "text")
logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a signed purchase link")
    parser.add_argument("business_id")
    parser.add_argument("business_name")
    parser.add_argument("--price", type=int, required=True, help="Price in cents")
    parser.add_argument("--value", type=int, default=0, help="Estimated value in cents")
    parser.add_argument("--campaign-id", default="")
    parser.add_argument("--preview-pages", type=int, default=0)
    parser.add_argument("--base-url", default=config.base_url)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        service = TokenService(load_signing_key(config), config.token_ttl_seconds)
    except ConfigError as e:
        logger.error(f"Cannot sign links: {e}")
        return 1

    try:
        issued = service.generate(
            business_id=args.business_id,
            business_name=args.business_name,
            price=args.price,
            value=args.value,
            campaign_id=args.campaign_id,
            preview_pages=args.preview_pages,
        )
    except ValueError as e:
        logger.error(f"Invalid link terms: {e}")
        return 1

    links = build_link_set(args.base_url, issued.token, config.purchase_path)

    print(json.dumps(
        {
            "token": issued.token,
            "urls": links.model_dump(),
            "expires_at": datetime.fromtimestamp(issued.payload.expires_at, tz=timezone.utc).isoformat(),
        },
        indent=2,
    ))
    return 0


if __name__ == "__main__":
    sys.exit(main())
