"""Exception types for the purchase link service."""


class PurchaseLinkError(Exception):
    """Base class for all purchase link errors."""


class ConfigError(PurchaseLinkError):
    """Configuration is missing or unsafe (e.g. weak signing secret).

    Raised at startup. A process that hits this must not serve token operations.
    """


class MalformedTokenError(PurchaseLinkError, ValueError):
    """A token or payload could not be parsed or decoded."""
