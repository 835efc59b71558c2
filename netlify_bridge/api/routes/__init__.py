"""
HTTP routes of the Netlify Bridge.
"""

from .action_routes import router as action_router
from .auth_routes import router as auth_router
from .command_routes import router as command_router
from .health_routes import router as health_router
from .webhook_routes import router as webhook_router

__all__ = [
    "action_router",
    "auth_router",
    "command_router",
    "health_router",
    "webhook_router",
]
