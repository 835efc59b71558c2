"""
Netlify API resource models.

Only the fields the bridge reads are declared; everything else in
Netlify's responses is ignored.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NetlifyModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class BuildSettings(NetlifyModel):
    repo_url: Optional[str] = None
    repo_branch: Optional[str] = None


class Site(NetlifyModel):
    id: str
    name: Optional[str] = None
    url: Optional[str] = None
    ssl_url: Optional[str] = None
    admin_url: Optional[str] = None
    custom_domain: Optional[str] = None
    account_name: Optional[str] = None
    updated_at: Optional[str] = None
    build_settings: Optional[BuildSettings] = None

    @property
    def repo_url(self) -> Optional[str]:
        return self.build_settings.repo_url if self.build_settings else None

    @property
    def repo_branch(self) -> Optional[str]:
        return self.build_settings.repo_branch if self.build_settings else None


class Account(NetlifyModel):
    id: str
    name: Optional[str] = None
    billing_email: Optional[str] = None
    type: Optional[str] = None
    type_name: Optional[str] = None
    roles_allowed: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class BuildHook(NetlifyModel):
    id: Optional[str] = None
    title: Optional[str] = None
    branch: Optional[str] = None
    url: str


class Build(NetlifyModel):
    id: Optional[str] = None
    deploy_id: Optional[str] = None
    sha: Optional[str] = None
    done: bool = False
    error: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.done and not self.error


class Hook(NetlifyModel):
    id: Optional[str] = None
    site_id: Optional[str] = None
    type: Optional[str] = None
    event: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    disabled: bool = False

    @property
    def url(self) -> Optional[str]:
        value = self.data.get("url") if self.data else None
        return value if isinstance(value, str) else None


class WebhookEvent(NetlifyModel):
    """Payload of a Netlify outgoing deploy notification."""

    name: str = ""
    site_id: str = ""
    build_id: str = ""
    admin_url: str = ""
    state: Optional[str] = None
    error_message: Optional[str] = None
    branch: Optional[str] = None
    deploy_ssl_url: Optional[str] = None

    @property
    def build_log_url(self) -> str:
        return f"{self.admin_url}/deploys/{self.build_id}"
