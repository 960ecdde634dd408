"""
Configuration Manager for Concierge Microservices

Per-service view over the global settings: service port, debug flag,
log level and endpoint discovery for collaborators.

Usage:
    from core.config_manager import ConfigManager

    config_manager = ConfigManager("credit_service")
    config = config_manager.get_service_config()

    host, port = config_manager.discover_service(
        service_name="postgres_service",
        default_host="localhost",
        default_port=5432,
        env_host_key="POSTGRES_HOST",
        env_port_key="POSTGRES_PORT",
    )
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from core.config import ConciergeConfig, get_settings

logger = logging.getLogger(__name__)


class Environment(Enum):
    """Deployment environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        aliases = {"dev": "development", "test": "testing", "prod": "production"}
        value = aliases.get(value, value)
        try:
            return cls(value)
        except ValueError:
            return cls.DEVELOPMENT


# Default ports per service
SERVICE_PORTS = {
    "membership_service": 8241,
    "credit_service": 8242,
    "service_request_service": 8243,
    "booking_service": 8244,
}


@dataclass
class ServiceConfig:
    """Resolved configuration for a single service"""
    service_name: str
    service_port: int
    environment: Environment
    debug: bool
    log_level: str
    nats_enabled: bool
    settings: ConciergeConfig


class ConfigManager:
    """Configuration manager for one service"""

    def __init__(self, service_name: str, settings: Optional[ConciergeConfig] = None):
        self.service_name = service_name
        self.settings = settings or get_settings()
        self.environment = Environment.from_string(self.settings.environment)

    def get_service_config(self) -> ServiceConfig:
        """Build the service config, honouring <SERVICE>_PORT overrides"""
        env_port_key = f"{self.service_name.upper()}_PORT"
        default_port = SERVICE_PORTS.get(self.service_name, 8000)
        try:
            port = int(os.getenv(env_port_key, default_port))
        except ValueError:
            logger.warning(f"Invalid {env_port_key}, using default port {default_port}")
            port = default_port

        return ServiceConfig(
            service_name=self.service_name,
            service_port=port,
            environment=self.environment,
            debug=self.settings.debug,
            log_level=self.settings.logging.log_level,
            nats_enabled=self.settings.infra.nats_enabled,
            settings=self.settings,
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Read a setting by attribute name, falling back to the environment"""
        if hasattr(self.settings, key):
            return getattr(self.settings, key)
        return os.getenv(key.upper(), default)

    def discover_service(
        self,
        service_name: str,
        default_host: str,
        default_port: int,
        env_host_key: Optional[str] = None,
        env_port_key: Optional[str] = None,
    ) -> Tuple[str, int]:
        """
        Resolve host and port for a collaborator.

        Priority: environment variables → default fallback

        Args:
            service_name: Logical name of the collaborator
            default_host: Host used when no override exists
            default_port: Port used when no override exists
            env_host_key: Environment variable holding the host
            env_port_key: Environment variable holding the port

        Returns:
            (host, port) tuple
        """
        host = os.getenv(env_host_key) if env_host_key else None
        port_value = os.getenv(env_port_key) if env_port_key else None

        port = default_port
        if port_value:
            try:
                port = int(port_value)
            except ValueError:
                logger.warning(f"Invalid port '{port_value}' for {service_name}, using {default_port}")

        resolved_host = host or default_host
        logger.debug(f"Discovered {service_name} at {resolved_host}:{port}")
        return resolved_host, port

    def get_config_summary(self, show_secrets: bool = False) -> Dict[str, Any]:
        """Summarise configuration for diagnostics"""
        settings = self.settings

        def mask(value: Optional[str]) -> Optional[str]:
            if value is None or show_secrets:
                return value
            return "***"

        return {
            "service_name": self.service_name,
            "environment": self.environment.value,
            "debug": settings.debug,
            "log_level": settings.logging.log_level,
            "postgres": f"{settings.infra.postgres_host}:{settings.infra.postgres_port}/{settings.infra.postgres_db}",
            "nats_enabled": settings.infra.nats_enabled,
            "nats_url": settings.infra.get_nats_url(),
            "payment_backend_url": settings.payment_backend_url,
            "payment_backend_key": mask(settings.payment_backend_key),
            "jwt_secret": mask(settings.jwt_secret),
            "refund_on_cancel": settings.refund_on_cancel,
        }

    def print_config_summary(self, show_secrets: bool = False) -> None:
        """Log configuration summary"""
        summary = self.get_config_summary(show_secrets=show_secrets)
        logger.info(f"Configuration for {self.service_name}:")
        for key, value in summary.items():
            logger.info(f"  {key}: {value}")
