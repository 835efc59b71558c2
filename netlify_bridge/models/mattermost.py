"""
Mattermost payload models.

Request bodies Mattermost sends to the bridge (slash commands and
interactive message actions) and the post structures the bridge sends
back through the REST API or as integration responses.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SlashCommandRequest(BaseModel):
    """Form fields of a custom slash command request."""

    model_config = ConfigDict(extra="ignore")

    token: Optional[str] = None
    team_id: str = ""
    team_domain: Optional[str] = None
    channel_id: str = ""
    channel_name: Optional[str] = None
    user_id: str = ""
    user_name: Optional[str] = None
    command: str = ""
    text: str = ""
    response_url: Optional[str] = None
    trigger_id: Optional[str] = None

    @property
    def command_line(self) -> str:
        """The command as typed, e.g. "/netlify list id"."""
        return f"{self.command} {self.text}".strip()


class PostActionOptions(BaseModel):
    """A single dropdown option."""

    text: str
    value: str


class PostActionIntegration(BaseModel):
    """Where Mattermost sends the action and what context it echoes back."""

    url: str
    context: Dict[str, Any] = Field(default_factory=dict)


class PostAction(BaseModel):
    """A button or dropdown inside a message attachment."""

    type: str = "button"
    name: str
    disabled: bool = False
    options: Optional[List[PostActionOptions]] = None
    integration: Optional[PostActionIntegration] = None


class SlackAttachment(BaseModel):
    """Slack-compatible message attachment."""

    fallback: Optional[str] = None
    color: Optional[str] = None
    pretext: Optional[str] = None
    title: Optional[str] = None
    title_link: Optional[str] = None
    text: Optional[str] = None
    footer: Optional[str] = None
    actions: Optional[List[PostAction]] = None


def attachments_props(attachments: Optional[List[SlackAttachment]]) -> Dict[str, Any]:
    """Post props carrying the given attachments."""
    if not attachments:
        return {}
    return {
        "attachments": [
            attachment.model_dump(exclude_none=True) for attachment in attachments
        ]
    }


class PostActionIntegrationRequest(BaseModel):
    """Body Mattermost posts when a user clicks a button or picks an option."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = ""
    user_name: Optional[str] = None
    channel_id: str = ""
    channel_name: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    post_id: Optional[str] = None
    trigger_id: Optional[str] = None
    type: Optional[str] = None
    data_source: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)

    def context_value(self, key: str) -> str:
        value = self.context.get(key)
        return value if isinstance(value, str) else ""

    @property
    def action(self) -> str:
        return self.context_value("action")

    @property
    def action_secret(self) -> str:
        return self.context_value("actionSecret")

    @property
    def selected_option(self) -> str:
        return self.context_value("selected_option")

    def selected_values(self) -> List[str]:
        """Whitespace separated fields packed into the selected option."""
        return self.selected_option.split()


class PostUpdate(BaseModel):
    """Replacement content for the post that triggered an action."""

    message: str = ""
    props: Dict[str, Any] = Field(default_factory=dict)


class PostActionIntegrationResponse(BaseModel):
    """Response body for an interactive message action."""

    update: Optional[PostUpdate] = None
    ephemeral_text: Optional[str] = None

    @classmethod
    def updated(
            cls,
            message: str,
            attachments: Optional[List[SlackAttachment]] = None
    ) -> "PostActionIntegrationResponse":
        """Replace the original post with a message and optional attachments."""
        return cls(update=PostUpdate(message=message, props=attachments_props(attachments)))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
