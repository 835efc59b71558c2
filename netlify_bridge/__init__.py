"""
Netlify Bridge - Mattermost integration for Netlify.

This package lets Mattermost users connect their Netlify account,
list sites, trigger deploys, roll back deploys and subscribe channels
to build notifications through slash commands and interactive messages.
"""

__version__ = "0.4.0"
__description__ = "Mattermost integration for controlling Netlify sites from chat"

# Package metadata
__title__ = "netlify-bridge"
__license__ = "MIT"

# Semantic version components
VERSION_INFO = (0, 4, 0)

# Service identification
SERVICE_NAME = "netlify-bridge"

__all__ = [
    "__version__",
    "__description__",
    "VERSION_INFO",
    "SERVICE_NAME",
]
