"""
Configuration package for Netlify Bridge.

This package provides centralized configuration management with
environment-based settings, validation, and constants.
"""

from netlify_bridge.config.settings import get_settings, reload_settings, Settings
from netlify_bridge.config.constants import (
    SERVICE_NAME,
    SERVICE_VERSION,
    NetlifyEvent,
    ActionType,
    CallbackRoute,
)

__all__ = [
    "get_settings",
    "reload_settings",
    "Settings",
    "SERVICE_NAME",
    "SERVICE_VERSION",
    "NetlifyEvent",
    "ActionType",
    "CallbackRoute",
]
