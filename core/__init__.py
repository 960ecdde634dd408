#!/usr/bin/env python3
"""
Core Module for the Concierge Microservices

Shared infrastructure used by every concierge service.

COMPONENTS:
    - config/: Dataclass configuration loaded from environment files
    - config_manager.py: Per-service configuration and endpoint discovery
    - logger.py: Service logger setup
    - postgres_client.py: asyncpg pool wrapper
    - nats_client.py: NATS event bus for event-driven architecture
    - jwt_manager.py: Access token verification
    - auth_dependencies.py: FastAPI authentication dependencies
    - service_client_base.py: Base httpx client for remote collaborators

USAGE:
    from core.config_manager import ConfigManager

    # Initialize configuration for a service
    config = ConfigManager("credit_service")
"""

__version__ = "1.0.0"
