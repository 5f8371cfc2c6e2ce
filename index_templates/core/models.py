"""Domain models for connection settings and template state."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from .normalize import TemplateContent, normalize

Ensure = Literal["present", "absent"]


class TransportConfig(BaseModel):
    """Connection parameters for the template service."""

    model_config = ConfigDict(frozen=True)

    scheme: Literal["http", "https"] = Field(default="http", description="URL scheme")
    host: str = Field(default="localhost", min_length=1, description="Service host")
    port: int = Field(default=9200, ge=1, le=65535, description="Service port")
    timeout: float = Field(default=10.0, gt=0, description="Request timeout (seconds)")
    verify_tls: bool = Field(
        default=True, description="Validate server certificates for https"
    )
    username: str | None = Field(default=None, description="Basic auth user")
    password: SecretStr | None = Field(default=None, description="Basic auth password")

    @model_validator(mode="after")
    def _credentials_come_in_pairs(self) -> TransportConfig:
        if (self.username is None) != (self.password is None):
            raise ValueError("username and password must be provided together")
        return self

    @property
    def auth_enabled(self) -> bool:
        return self.username is not None

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    def basic_auth(self) -> tuple[str, str] | None:
        if self.username is None or self.password is None:
            return None
        return self.username, self.password.get_secret_value()


class DeclaredTemplate(BaseModel):
    """Desired state of one managed template.

    ``content`` may hold any subset of the canonical fields; missing fields
    take their normalization defaults, they never remove anything remotely.
    """

    name: str = Field(..., min_length=1, description="Template name")
    ensure: Ensure = Field(default="present", description="Desired presence")
    content: dict[str, Any] = Field(default_factory=dict, description="Template body")

    @field_validator("content")
    @classmethod
    def _content_normalizes(cls, value: dict[str, Any]) -> dict[str, Any]:
        normalize(value)
        return value

    def desired(self) -> TemplateContent:
        return normalize(self.content)


class TemplateState(BaseModel):
    """Observed or converged state of one template."""

    model_config = ConfigDict(frozen=True)

    name: str
    ensure: Ensure = "present"
    content: TemplateContent | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ensure": self.ensure,
            "content": self.content.to_document() if self.content is not None else None,
        }
