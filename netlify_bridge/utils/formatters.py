"""
Message formatting utilities.

Builds the markdown tables, account summaries and build notification
attachments the bot posts to Mattermost.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from netlify_bridge.config.constants import (
    DISPLAY_DATE_FORMAT,
    MARKDOWN_DEPLOY_LIST_TABLE_HEADER,
    MARKDOWN_SITE_LIST_DETAIL_TABLE_HEADER,
    MARKDOWN_SITE_LIST_TABLE_HEADER,
    MAX_ROLLBACK_DEPLOYS,
    NETLIFY_DATE_FORMATS,
    NOTIFICATION_COLORS,
    NetlifyEvent,
)
from netlify_bridge.models.mattermost import PostActionOptions, SlackAttachment
from netlify_bridge.models.netlify import Account, Build, Site, WebhookEvent


def parse_netlify_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp as returned by the Netlify API."""
    if not value:
        return None

    for date_format in NETLIFY_DATE_FORMATS:
        try:
            return datetime.strptime(value, date_format)
        except ValueError:
            continue
    return None


def format_netlify_date(value: Optional[str], default: str) -> str:
    """Render a Netlify timestamp for display, or `default` if unparseable."""
    parsed = parse_netlify_date(value)
    if parsed is None:
        return default
    return parsed.strftime(DISPLAY_DATE_FORMAT)


def _or(value: Optional[str], default: str = "-") -> str:
    return value if value else default


def format_site_table(sites: List[Site], with_ids: bool = False) -> str:
    """
    Markdown table of sites.

    Args:
        sites: Sites to list
        with_ids: List only names and IDs

    Returns:
        Markdown table with one row per site
    """
    rows = [MARKDOWN_SITE_LIST_DETAIL_TABLE_HEADER if with_ids else MARKDOWN_SITE_LIST_TABLE_HEADER]

    for site in sites:
        if with_ids:
            rows.append(f"| {_or(site.name)} | {_or(site.id)} |")
            continue

        rows.append(
            "| {name} | {url} | {domain} | {repo} | {branch} | {team} | {updated} |".format(
                name=_or(site.name),
                url=_or(site.url),
                domain=_or(site.custom_domain, "*none*"),
                repo=_or(site.repo_url),
                branch=_or(site.repo_branch),
                team=_or(site.account_name),
                updated=format_netlify_date(site.updated_at, "*failed to obtain*"),
            )
        )

    return "\n".join(rows)


def format_account_details(account: Account) -> str:
    """Markdown summary of a Netlify account."""
    return (
        "Details of Netlify account attached with Mattermost:\n"
        "***\n"
        "### Primary details\n"
        f"*Name* : **{_or(account.name)}**\n"
        f"*Email* : **{_or(account.billing_email)}**\n"
        f"*Account Type* : **{_or(account.type)}** - **{_or(account.type_name)}**\n\n"
        "### Misc details\n"
        f"*ID* : {account.id}\n"
        f"*Roles allowed* : {' '.join(account.roles_allowed)}\n"
        f"*Created at* : {format_netlify_date(account.created_at, 'not available')}\n"
        f"*Last updated* : {format_netlify_date(account.updated_at, 'not available')}\n"
        "***"
    )


def format_rollback_candidates(
        builds: List[Build],
        site_id: str,
        site_name: str,
        limit: int = MAX_ROLLBACK_DEPLOYS
) -> Tuple[str, List[PostActionOptions]]:
    """
    Table and dropdown options for the most recent successful deploys.

    The sequence number is the build's position in the full listing so
    the table and the dropdown agree.

    Returns:
        Markdown table and one dropdown option per listed deploy
    """
    rows = [MARKDOWN_DEPLOY_LIST_TABLE_HEADER]
    options: List[PostActionOptions] = []

    for index, build in enumerate(builds):
        if len(options) >= limit:
            break
        if not build.succeeded or not build.deploy_id:
            continue

        commit = build.sha or "*Deployed via webhook or manually*"
        deployed_at = format_netlify_date(build.created_at, "-")
        rows.append(f"| {index} | {commit} | {deployed_at} | {build.deploy_id} |")
        options.append(
            PostActionOptions(
                text=f"To sequence No.{index}",
                value=f"{site_id} {site_name} {build.deploy_id}",
            )
        )

    return "\n".join(rows), options


def build_notification_attachment(event_type: NetlifyEvent, event: WebhookEvent) -> SlackAttachment:
    """Attachment announcing a deploy state change of a site."""
    footer = f"Using git {_or(event.branch)} branch"
    color = NOTIFICATION_COLORS[event_type]

    if event_type == NetlifyEvent.DEPLOY_BUILDING:
        return SlackAttachment(
            fallback=f"There is a new deploy in process for {event.name}",
            color=color,
            pretext=f":flight_departure: There is a new deploy in process for **{event.name}**",
            title="Visit the build log",
            title_link=event.build_log_url,
            footer=footer,
        )

    if event_type == NetlifyEvent.DEPLOY_CREATED:
        return SlackAttachment(
            fallback=f"Successful deploy of {event.name}",
            color=color,
            pretext=f":rocket: Successful deploy of **{event.name}**",
            title="Visit the changes live",
            title_link=event.deploy_ssl_url,
            text=f"Or check out the [build log]({event.build_log_url})",
            footer=footer,
        )

    return SlackAttachment(
        fallback=f"Something went wrong deploying {event.name}",
        color=color,
        pretext=f":fire: Something went wrong deploying **{event.name}**",
        title="Visit the build log",
        title_link=event.build_log_url,
        text=f"The last message we got from the build was `{_or(event.error_message)}`",
        footer=footer,
    )
