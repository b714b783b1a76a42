import logging
from dataclasses import dataclass
from decimal import Decimal

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Record store
    RECORD_STORE: str = "memory"  # memory | sql
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Identity
    AUTH_SECRET_KEY: Optional[str] = None
    AUTH_ISSUER: Optional[str] = None
    AUTH_AUDIENCE: Optional[str] = None
    ALLOW_USER_ID_HEADER: bool = True  # X-User-Id fallback for tests/dev

    # HTTP
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    # Billing policy
    PAID_PRICE_MIN: Decimal = Decimal("4.99")
    PAID_PRICE_MAX: Decimal = Decimal("50.00")
    PRICE_DECIMAL_PLACES: int = 2
    CANCEL_FALLBACK_DAYS: int = 30

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


@dataclass(frozen=True)
class BillingPolicy:
    """Platform pricing policy applied by the subscription engine."""
    paid_price_min: Decimal = Decimal("4.99")
    paid_price_max: Decimal = Decimal("50.00")
    price_decimal_places: int = 2
    cancel_fallback_days: int = 30

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "BillingPolicy":
        cfg = cfg or settings
        return cls(
            paid_price_min=Decimal(str(cfg.PAID_PRICE_MIN)),
            paid_price_max=Decimal(str(cfg.PAID_PRICE_MAX)),
            price_decimal_places=int(cfg.PRICE_DECIMAL_PLACES),
            cancel_fallback_days=int(cfg.CANCEL_FALLBACK_DAYS),
        )

    def price_in_bounds(self, price: Decimal) -> bool:
        """Free plans always pass; paid plans must sit inside the platform band."""
        if price == 0:
            return True
        return self.paid_price_min <= price <= self.paid_price_max


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("creatorsubs")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    if cfg.RECORD_STORE not in ("memory", "sql"):
        problems.append(f"RECORD_STORE must be 'memory' or 'sql', got {cfg.RECORD_STORE!r}")
    if cfg.RECORD_STORE == "sql" and not (cfg.DATABASE_URL or cfg.TEST_DATABASE_URL):
        problems.append("Missing required configuration: DATABASE_URL")
    if not cfg.AUTH_SECRET_KEY and not cfg.ALLOW_USER_ID_HEADER:
        problems.append("Missing required configuration: AUTH_SECRET_KEY")
    if cfg.PAID_PRICE_MIN > cfg.PAID_PRICE_MAX:
        problems.append("PAID_PRICE_MIN must not exceed PAID_PRICE_MAX")

    if problems:
        message = "; ".join(problems)
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
