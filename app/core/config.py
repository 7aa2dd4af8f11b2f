from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string; sqlite:// works for local dev)
      - JWT_SECRET (signing secret shared with the auth provider)

    Optional:
      - POINTS_* knobs for the loyalty program
      - SMTP_* for order/appointment notification emails
    """

    PROJECT_NAME: str = "Chocky's Commerce API"
    API_V1_STR: str = "/api/v1"

    # DB config
    DATABASE_URL: str = "sqlite:///./chockys.db"
    DATABASE_ECHO: bool = False

    # JWT verification (backend-side)
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    CURRENCY: str = "UGX"

    # Loyalty: 1 point per 1000 UGX of a delivered order
    POINTS_PER_CURRENCY_UNIT: int = 1000
    # Redemption: every 100 points buy 5000 UGX, one point is worth 50 UGX
    POINTS_REDEMPTION_BLOCK: int = 100
    POINTS_REDEMPTION_VALUE: int = 5000
    POINT_VALUE: int = 50

    # Shipping
    DEFAULT_PARCEL_WEIGHT_KG: float = 1.0

    # SMTP (notifications are skipped when SMTP_HOST is unset)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Chocky's"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
