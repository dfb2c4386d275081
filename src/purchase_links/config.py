"""Centralized configuration for the purchase link service.

Loads all configuration from environment variables with sensible defaults.
The signing secret is the only value without a usable default: it must be
provided, and is turned into a ``SigningKey`` once at process start.
"""

from dataclasses import dataclass
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

# Load environment variables from .env file
load_dotenv()

DEFAULT_TOKEN_TTL_SECONDS = 24 * 60 * 60


class Config(BaseSettings):
    """Main configuration class for the link service and its scripts."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Token signing
    utm_secret_key: str = Field(default="", description="Shared HMAC secret for purchase tokens")
    token_ttl_seconds: int = Field(
        default=DEFAULT_TOKEN_TTL_SECONDS, description="Lifetime of a purchase token"
    )
    min_secret_length: int = Field(default=32, description="Minimum secret length in bytes")

    # Public site
    base_url: str = Field(default="http://localhost:3000", description="Site that serves /purchase")
    purchase_path: str = Field(default="/purchase")

    # Admin link generation
    admin_api_key: str = Field(default="", description="Key required by POST /admin/links")
    allow_link_generation: bool = Field(default=False)
    enable_test_mode: bool = Field(default=False)

    # Rate limiting for /links/validate
    disable_rate_limit: bool = Field(default=False)
    rate_limit_window_seconds: int = Field(default=60)
    rate_limit_max_requests: int = Field(default=10)
    rate_limit_max_clients: int = Field(default=10000)

    # Referral store
    database_path: str = Field(default="./referrals.db")

    # Service
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=4030)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="json")

    @property
    def link_generation_enabled(self) -> bool:
        return self.enable_test_mode or self.allow_link_generation


# Global config instance
config = Config()


@dataclass(frozen=True)
class SigningKey:
    """Immutable HMAC key material, shared read-only across requests."""

    secret: bytes

    def __repr__(self) -> str:
        return f"SigningKey(<{len(self.secret)} bytes>)"


def load_signing_key(cfg: Optional[Config] = None) -> SigningKey:
    """Build the signing key from configuration.

    Args:
        cfg: Configuration to read. Defaults to the global config.

    Returns:
        The signing key.

    Raises:
        ConfigError: If the secret is unset or shorter than ``min_secret_length`` bytes.
    """
    cfg = cfg or config
    secret = (cfg.utm_secret_key or "").encode("utf-8")
    if not secret:
        raise ConfigError("UTM_SECRET_KEY is not set")
    if len(secret) < cfg.min_secret_length:
        raise ConfigError(
            f"UTM_SECRET_KEY must be at least {cfg.min_secret_length} bytes "
            f"(got {len(secret)})"
        )
    return SigningKey(secret)


def validate_config_for_service(
    service: Literal["links", "admin"], cfg: Optional[Config] = None
) -> None:
    """Validate that required configuration is present for a specific service.

    Args:
        service: The service name to validate configuration for.
        cfg: Configuration to check. Defaults to the global config.

    Raises:
        ConfigError: If required configuration is missing.
    """
    cfg = cfg or config
    errors = []

    try:
        load_signing_key(cfg)
    except ConfigError as e:
        errors.append(str(e))

    if cfg.token_ttl_seconds <= 0:
        errors.append("TOKEN_TTL_SECONDS must be positive")

    if service == "links":
        if (
            cfg.rate_limit_max_requests <= 0
            or cfg.rate_limit_window_seconds <= 0
            or cfg.rate_limit_max_clients <= 0
        ):
            errors.append(
                "RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS and RATE_LIMIT_MAX_CLIENTS must be positive"
            )

    if service == "admin":
        if not cfg.admin_api_key:
            errors.append("ADMIN_API_KEY must be set to generate links")
        if not cfg.base_url:
            errors.append("BASE_URL must be set to build purchase links")

    if errors:
        error_msg = f"Configuration errors for {service} service:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigError(error_msg)
