"""
Core integration layer: slash command parsing and the outbound
Netlify and Mattermost API clients.
"""

from .command_parser import ParsedCommand, transform_command_to_action
from .exceptions import (
    CoreError,
    ExternalAPIError,
    NetlifyAPIError,
    MattermostAPIError,
    OAuthExchangeError,
)
from .mattermost_client import MattermostClient
from .netlify_client import NetlifyClient, exchange_authorization_code

__all__ = [
    "ParsedCommand",
    "transform_command_to_action",
    "CoreError",
    "ExternalAPIError",
    "NetlifyAPIError",
    "MattermostAPIError",
    "OAuthExchangeError",
    "MattermostClient",
    "NetlifyClient",
    "exchange_authorization_code",
]
