#!/usr/bin/env python3
"""Modular configuration system for the concierge platform

Configuration hierarchy:
- infra_config: Infrastructure services (PostgreSQL, NATS)
- concierge_config: Platform settings (payment backend, auth, business rules)
- logging_config: Logging configuration
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig
from .infra_config import InfraConfig
from .concierge_config import ConciergeConfig

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}
env_file = env_files.get(env, "deployment/environments/dev.env")
load_dotenv(env_file, override=False)

# Create global settings instance
settings = ConciergeConfig.from_env()

def get_settings() -> ConciergeConfig:
    """Get global settings instance"""
    return settings

def reload_settings() -> ConciergeConfig:
    """Reload settings from environment"""
    global settings
    settings = ConciergeConfig.from_env()
    return settings

__all__ = [
    'ConciergeConfig',
    'get_settings',
    'reload_settings',
    'settings',
    'LoggingConfig',
    'InfraConfig',
]
