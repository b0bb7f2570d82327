"""
Configuration management for the NovaClaim backend.

Loads and validates settings from environment variables and an optional .env
file. Exposes a single source of truth for all service configuration.
"""

from backend_novaclaim.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
