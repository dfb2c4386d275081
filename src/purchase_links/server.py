"""Purchase link service.

FastAPI application exposing:
- purchase link validation for the purchase page
- admin link generation
- referral code quotes

The signing key is loaded when the app is created; a missing or weak secret
raises ``ConfigError`` before anything is served.
"""

import hmac
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import Config, config, load_signing_key, validate_config_for_service
from .database import ReferralStore
from .links import TOKEN_PARAM, build_link_set
from .logging_utils import RequestIdContext, get_logger, mask_token, setup_logging
from .models import (
    GenerateLinkRequest,
    GenerateLinkResponse,
    LinkValidationResponse,
    ReferralQuoteRequest,
    ReferralQuoteResponse,
)
from .rate_limit import RateLimiter, client_ip
from .referrals import calculate_discounted_price, normalize_code, validate_for_checkout
from .tokens import TokenService

logger = get_logger(__name__)

router = APIRouter()


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_referral_store(request: Request) -> ReferralStore:
    return request.app.state.referral_store


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "service": "purchase-links"}


@router.get("/links/validate", response_model=LinkValidationResponse)
async def validate_link(
    request: Request,
    utm: Optional[str] = None,
    service: TokenService = Depends(get_token_service),
):
    """Validate a purchase token taken from the ``utm`` query parameter.

    Tampered and malformed tokens get the same response so callers cannot
    tell them apart. Expired tokens get a specific message and their payload.
    """
    headers = {}
    limiter: Optional[RateLimiter] = request.app.state.rate_limiter
    if limiter is not None:
        fallback = request.client.host if request.client else "127.0.0.1"
        rate = limiter.check(client_ip(request.headers, fallback))
        headers = rate.headers()
        if not rate.allowed:
            logger.warning("Rate limit exceeded for link validation")
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too many requests",
                    "message": "Rate limit exceeded. Please try again later.",
                },
                headers=headers,
            )

    if not utm:
        return JSONResponse(
            status_code=400,
            content=LinkValidationResponse(
                valid=False, status="invalid", message=f"Missing {TOKEN_PARAM} parameter"
            ).model_dump(mode="json"),
            headers=headers,
        )

    try:
        result = service.validate(utm)
    except Exception as e:
        logger.error(f"Link validation error for {mask_token(utm)}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(f"Link validation {mask_token(utm)}: {result.status.value}")

    body = LinkValidationResponse(
        valid=result.is_valid,
        status=result.public_status,
        message=result.public_message,
        payload=result.payload,
    )
    return JSONResponse(
        status_code=200 if result.is_valid else 400,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


def require_admin(
    x_admin_api_key: Optional[str] = Header(None, alias="X-Admin-Api-Key"),
    cfg: Config = Depends(get_config),
) -> None:
    expected = cfg.admin_api_key
    if not expected or not x_admin_api_key or not hmac.compare_digest(
        x_admin_api_key.encode(), expected.encode()
    ):
        logger.warning("Rejected admin request with missing or wrong API key")
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post(
    "/admin/links",
    response_model=GenerateLinkResponse,
    dependencies=[Depends(require_admin)],
)
async def generate_link(
    body: GenerateLinkRequest,
    cfg: Config = Depends(get_config),
    service: TokenService = Depends(get_token_service),
) -> GenerateLinkResponse:
    """Generate a signed purchase link for a business."""
    if not cfg.link_generation_enabled:
        raise HTTPException(status_code=403, detail="Link generation is disabled")

    issued = service.generate(
        business_id=body.business_id,
        business_name=body.business_name,
        price=body.price,
        value=body.value,
        campaign_id=body.campaign_id,
        preview_pages=body.preview_pages,
    )

    return GenerateLinkResponse(
        token=issued.token,
        urls=build_link_set(cfg.base_url, issued.token, cfg.purchase_path),
        expires_at=datetime.fromtimestamp(issued.payload.expires_at, tz=timezone.utc),
        payload=issued.payload,
    )


@router.get("/admin/links")
async def link_generation_status(cfg: Config = Depends(get_config)) -> dict:
    """Report whether admin link generation is available."""
    return {
        "available": cfg.link_generation_enabled,
        "test_mode": cfg.enable_test_mode,
        "ttl_seconds": cfg.token_ttl_seconds,
    }


@router.post("/referrals/validate", response_model=ReferralQuoteResponse)
async def quote_referral(
    body: ReferralQuoteRequest,
    store: ReferralStore = Depends(get_referral_store),
) -> ReferralQuoteResponse:
    """Validate a referral code and price it against the original price."""
    try:
        result = await validate_for_checkout(store, body.code, lead_id=body.lead_id, email=body.email)
    except Exception as e:
        logger.error(f"Referral validation error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    if not result.valid or not result.code:
        return ReferralQuoteResponse(
            valid=False,
            reason=result.reason,
            code=normalize_code(body.code),
            original_price=body.price,
            discounted_price=body.price,
        )

    return ReferralQuoteResponse(
        valid=True,
        code=result.code.code,
        original_price=body.price,
        discounted_price=calculate_discounted_price(body.price, result.code),
        discount_display=result.discount_display,
    )


def create_app(cfg: Optional[Config] = None, store: Optional[ReferralStore] = None) -> FastAPI:
    """Build the application and its long-lived collaborators.

    Args:
        cfg: Configuration. Defaults to the global config.
        store: Referral store. Defaults to one at ``cfg.database_path``.

    Returns:
        The FastAPI application.

    Raises:
        ConfigError: If the signing secret is missing or too weak, or any
            other setting the service needs is missing or invalid.
    """
    cfg = cfg or config
    validate_config_for_service("links", cfg)
    if cfg.link_generation_enabled:
        validate_config_for_service("admin", cfg)
    key = load_signing_key(cfg)
    store = store or ReferralStore(cfg.database_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Initializing purchase link service...")
        await store.initialize()
        logger.info("Purchase link service initialized")
        yield

    app = FastAPI(
        title="Purchase Links",
        description="Signed purchase links and referral pricing",
        lifespan=lifespan,
    )

    app.state.config = cfg
    app.state.token_service = TokenService(key, cfg.token_ttl_seconds)
    app.state.referral_store = store
    app.state.rate_limiter = (
        None
        if cfg.disable_rate_limit
        else RateLimiter(
            max_requests=cfg.rate_limit_max_requests,
            window_seconds=cfg.rate_limit_window_seconds,
            max_clients=cfg.rate_limit_max_clients,
        )
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        with RequestIdContext(request.headers.get("x-request-id")) as request_id:
            response = await call_next(request)
            response.headers["X-Request-Id"] = request_id
            return response

    app.include_router(router)
    return app


def main() -> None:
    import uvicorn

    setup_logging(config.log_level, config.log_format)
    app = create_app(config)

    logger.info(f"Starting purchase link service on {config.host}:{config.port}")
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
