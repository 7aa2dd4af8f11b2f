from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.errors import (
    CommerceError,
    ConcurrentUpdateError,
    InactiveError,
    InsufficientStockError,
    InvalidTransitionError,
    MinimumNotMetError,
    NotFoundError,
    SlotConflictError,
    UsageLimitExceededError,
    ValidationError,
)
from app.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from app.models import user as _user_models  # noqa: F401
from app.models import product as _product_models  # noqa: F401
from app.models import shipping as _shipping_models  # noqa: F401
from app.models import coupon as _coupon_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401
from app.models import promotion as _promotion_models  # noqa: F401
from app.models import reward as _reward_models  # noqa: F401
from app.models import appointment as _appointment_models  # noqa: F401


# Routers
from app.routers.orders import router as orders_router
from app.routers.appointments import router as appointments_router
from app.routers.coupons import router as coupons_router
from app.routers.promotions import router as promotions_router
from app.routers.shipping import router as shipping_router
from app.routers.rewards import router as rewards_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")

# Most specific class first; lookup walks the exception's MRO
ERROR_STATUS_CODES: dict[type[CommerceError], int] = {
    NotFoundError: 404,
    ValidationError: 422,
    InvalidTransitionError: 409,
    InsufficientStockError: 409,
    SlotConflictError: 409,
    ConcurrentUpdateError: 409,
    UsageLimitExceededError: 400,
    InactiveError: 400,
    MinimumNotMetError: 400,
}


def status_code_for(exc: CommerceError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("🔄 Startup: Connecting to database...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME or "Chocky's Commerce API",
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CommerceError)
async def commerce_error_handler(request: Request, exc: CommerceError):
    """Render business rejections as {"detail", "error_type"} JSON."""
    status_code = status_code_for(exc)
    if status_code == 409:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error_type": exc.code},
    )


# Versioned API prefix, e.g. /api/v1
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(appointments_router, prefix=settings.API_V1_STR)
app.include_router(coupons_router, prefix=settings.API_V1_STR)
app.include_router(promotions_router, prefix=settings.API_V1_STR)
app.include_router(shipping_router, prefix=settings.API_V1_STR)
app.include_router(rewards_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "chockys-commerce"}
