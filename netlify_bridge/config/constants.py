"""
Application constants and enumerations.

This module defines the constant values, enumerations, message
templates and key layouts used throughout the Netlify Bridge.
"""

from enum import Enum

# Service Information
SERVICE_NAME = "netlify-bridge"
SERVICE_VERSION = "0.4.0"
SERVICE_DESCRIPTION = "Mattermost integration for controlling Netlify sites from chat"

# Key-value store layout
NETLIFY_AUTH_TOKEN_KV_IDENTIFIER = "_netlifyToken"
NETLIFY_WEBHOOK_SUBSCRIPTIONS_KV_IDENTIFIER = "_webhook"
OAUTH_STATE_RANDOM_LENGTH = 15
OAUTH_STATE_SEPARATOR = "_"

# Netlify endpoints
NETLIFY_AUTH_URL = "https://app.netlify.com/authorize"
NETLIFY_TOKEN_URL = "https://api.netlify.com/oauth/token"
NETLIFY_API_URL = "https://api.netlify.com/api/v1"

# Netlify build hooks
MATTERMOST_NETLIFY_BUILD_HOOK_TITLE = "Mattermost Netlify Bridge"
MATTERMOST_NETLIFY_BUILD_HOOK_MESSAGE = "Deploy triggered from Mattermost"

# Netlify outgoing webhooks
NETLIFY_EVENT_TYPE_HEADER = "X-Netlify-Event"
NETLIFY_SIGNATURE_HEADER = "X-Webhook-Signature"
NETLIFY_SIGNATURE_ISSUER = "netlify"
NETLIFY_HOOK_TYPE_URL = "url"

# Rollback listing
MAX_ROLLBACK_DEPLOYS = 5

# Browser binding for the OAuth flow
OAUTH_USER_COOKIE = "netlify_bridge_user"
OAUTH_COOKIE_MAX_AGE = 600


class NetlifyEvent(str, Enum):
    """Netlify build notification events the bridge subscribes to."""
    DEPLOY_BUILDING = "deploy_building"
    DEPLOY_CREATED = "deploy_created"
    DEPLOY_FAILED = "deploy_failed"


SUBSCRIBED_EVENTS = (
    NetlifyEvent.DEPLOY_BUILDING,
    NetlifyEvent.DEPLOY_CREATED,
    NetlifyEvent.DEPLOY_FAILED,
)

# Slash command verbs
COMMAND_ACTIONS = (
    "help",
    "connect",
    "disconnect",
    "list",
    "me",
    "deploy",
    "rollback",
    "subscribe",
    "unsubscribe",
    "subscriptions",
)


class ActionType(str, Enum):
    """Values carried in the `action` field of interactive message context."""
    DISCONNECT = "disconnect"
    CANCEL = "cancel"


class CallbackRoute(str, Enum):
    """Paths receiving interactive message callbacks."""
    DISCONNECT = "/command/disconnect"
    DEPLOY = "/command/deploy"
    ROLLBACK_BUILDS = "/command/rollback-builds"
    ROLLBACK = "/command/rollback"
    SUBSCRIBE = "/command/subscribe"
    UNSUBSCRIBE = "/command/unsubscribe"


class ErrorCategory(str, Enum):
    """Error categorization for monitoring."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"
    EXTERNAL = "external"


# Attachment colours for build notifications
NOTIFICATION_COLORS = {
    NetlifyEvent.DEPLOY_BUILDING: "#c2a344",
    NetlifyEvent.DEPLOY_CREATED: "#3ab259",
    NetlifyEvent.DEPLOY_FAILED: "#b2593a",
}

# Date handling
NETLIFY_DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
)
DISPLAY_DATE_FORMAT = "%d %b %y %H:%M UTC"

# Markdown tables
MARKDOWN_SITE_LIST_TABLE_HEADER = (
    "| Name | URL | Custom domain | Repository | Branch | Team | Last updated |\n"
    "|:-----|:----|:--------------|:-----------|:-------|:-----|:-------------|"
)
MARKDOWN_SITE_LIST_DETAIL_TABLE_HEADER = (
    "| Name | ID |\n"
    "|:-----|:---|"
)
MARKDOWN_DEPLOY_LIST_TABLE_HEADER = (
    "| Sequence No. | Commit | Deployed at | Deploy ID |\n"
    "|:-------------|:-------|:------------|:----------|"
)

# Messages, templates take the slash command as {command}
NOT_CONNECTED_MESSAGE = (
    "You must connect your Netlify account first.\n"
    "Please run `{command} connect`"
)
SITE_URL_MISSING_MESSAGE = "Error! Site URL is not defined in the App"
AUTHENTICATION_FAILED_MESSAGE = ":exclamation: Authentication failed"
EMPTY_SELECTION_MESSAGE = ":exclamation: One or more values while selecting from dropdown were empty"

SUCCESSFULLY_NETLIFY_CONNECTED_MESSAGE = (
    "#### Welcome to the Mattermost Netlify Plugin!\n"
    "You've successfully connected your Mattermost account on Netlify.\n\n"
    "##### Notifications\n"
    "Run `{command} subscribe` in a channel to receive build start, success and "
    "failure notifications of a site in that channel.\n"
    "##### Slash Commands\n"
    "Run `{command} help` to see everything you can do."
)

HELP_MESSAGE = (
    "#### Netlify slash commands\n"
    "* `{command} connect` - Connect your Mattermost account to Netlify\n"
    "* `{command} disconnect` - Disconnect your Mattermost account from Netlify\n"
    "* `{command} me` - Show details of the connected Netlify account\n"
    "* `{command} list` - List your Netlify sites\n"
    "* `{command} list id` - List your Netlify sites with their IDs\n"
    "* `{command} deploy` - Select a site to deploy\n"
    "* `{command} deploy <site id>` - Deploy a site by its ID\n"
    "* `{command} rollback` - Roll a site back to a previous deploy\n"
    "* `{command} subscribe` - Subscribe this channel to build notifications of a site\n"
    "* `{command} unsubscribe` - Unsubscribe this channel from build notifications of a site\n"
    "* `{command} subscriptions` - Show the sites this channel receives notifications for\n"
    "* `{command} help` - Show this message"
)

DEFAULT_AUTH_REDIRECT_HTML = """<!DOCTYPE html>
<html>
    <head>
        <title>Netlify connected</title>
    </head>
    <body>
        <p>You can safely close this page and head back to your Mattermost app</p>
    </body>
</html>
"""
