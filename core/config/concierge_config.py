#!/usr/bin/env python3
"""Concierge platform settings"""
import os
from dataclasses import dataclass, field
from typing import Optional

from .logging_config import LoggingConfig
from .infra_config import InfraConfig

def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class ConciergeConfig:
    """Concierge platform configuration"""

    debug: bool = False
    environment: str = "development"

    # Payment/subscription backend (serverless functions)
    payment_backend_url: str = "http://localhost:54321/functions/v1"
    payment_backend_key: Optional[str] = None
    payment_backend_timeout: float = 15.0

    # Auth
    jwt_secret: Optional[str] = None
    jwt_audience: str = "authenticated"
    internal_service_secret: str = "dev-internal-secret-change-in-production"

    # Business rules
    refund_on_cancel: bool = False
    credit_cas_max_attempts: int = 5
    transaction_page_size: int = 20

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    infra: InfraConfig = field(default_factory=InfraConfig)

    @classmethod
    def from_env(cls) -> 'ConciergeConfig':
        """Load concierge config from environment variables"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        timeout = os.getenv("PAYMENT_BACKEND_TIMEOUT", "15")
        return cls(
            debug=_bool(os.getenv("DEBUG", "false")),
            environment=env,
            payment_backend_url=os.getenv("PAYMENT_BACKEND_URL", "http://localhost:54321/functions/v1"),
            payment_backend_key=os.getenv("PAYMENT_BACKEND_KEY"),
            payment_backend_timeout=float(timeout) if timeout else 15.0,
            jwt_secret=os.getenv("JWT_SECRET"),
            jwt_audience=os.getenv("JWT_AUDIENCE", "authenticated"),
            internal_service_secret=os.getenv(
                "INTERNAL_SERVICE_SECRET", "dev-internal-secret-change-in-production"
            ),
            refund_on_cancel=_bool(os.getenv("BOOKING_REFUND_ON_CANCEL", "false")),
            credit_cas_max_attempts=_int(os.getenv("CREDIT_CAS_MAX_ATTEMPTS", "5"), 5),
            transaction_page_size=_int(os.getenv("CREDIT_TRANSACTION_PAGE_SIZE", "20"), 20),
            logging=LoggingConfig.from_env(),
            infra=InfraConfig.from_env(),
        )
