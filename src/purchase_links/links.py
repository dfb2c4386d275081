"""Purchase URL construction.

Pure string composition: nothing here validates the token.
"""

from typing import Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from .models import LinkSet

TOKEN_PARAM = "utm"


def build_purchase_url(
    base_url: str,
    token: str,
    param: str = TOKEN_PARAM,
    extra_params: Optional[Mapping[str, str]] = None,
) -> str:
    """Append the token (and any extra parameters) to a URL's query string.

    Existing query parameters are kept; a parameter with the same name as one
    being set is replaced.

    Args:
        base_url: URL of the purchase page.
        token: Opaque token string.
        param: Query parameter name for the token.
        extra_params: Additional parameters to set after the token.

    Returns:
        The composed URL.
    """
    scheme, netloc, path, query, fragment = urlsplit(base_url)

    updates = {param: token}
    if extra_params:
        updates.update(extra_params)

    pairs = [(k, v) for k, v in parse_qsl(query, keep_blank_values=True) if k not in updates]
    pairs.extend(updates.items())

    return urlunsplit((scheme, netloc, path, urlencode(pairs), fragment))


def build_link_set(base_url: str, token: str, purchase_path: str = "/purchase") -> LinkSet:
    """Build the standard set of links handed out for one token."""
    site = base_url.rstrip("/") + "/"
    purchase = urljoin(site, purchase_path.lstrip("/"))

    return LinkSet(
        purchase=build_purchase_url(purchase, token),
        purchase_with_preview=build_purchase_url(purchase, token, extra_params={"preview": "true"}),
        homepage=build_purchase_url(site, token),
        direct_checkout=build_purchase_url(purchase, token, extra_params={"direct": "true"}),
    )
