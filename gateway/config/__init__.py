"""Configuration module for the CRM account gateway."""
from .settings import GatewayConfig, load_settings

__all__ = ["GatewayConfig", "load_settings"]
