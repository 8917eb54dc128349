"""Token request and response models.

The request is an immutable dataclass; the response is a pydantic model so
the token endpoint's JSON can be validated directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from aad_oauth.models.flow import DEFAULT_TENANT, OOB_REDIRECT_URI, ApiVersion


@dataclass(frozen=True)
class TokenRequest:
    """Token endpoint request parameters.

    When authorization_code is absent the request is a client credentials
    grant, whatever the API version.
    """

    client_id: str
    client_secret: str | None = None  # v1 confidential clients
    tenant_id: str = DEFAULT_TENANT
    redirect_uri: str = OOB_REDIRECT_URI
    resource_uri: str | None = None  # v1 only
    scopes: tuple[str, ...] = field(default_factory=tuple)  # v2
    authorization_code: str | None = None
    api_version: ApiVersion = ApiVersion.V1

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ValueError("client_id must not be empty")
        if not self.tenant_id:
            raise ValueError("tenant_id must not be empty")
        object.__setattr__(self, "scopes", tuple(self.scopes))
        object.__setattr__(self, "api_version", ApiVersion(self.api_version))

    @property
    def grant_type(self) -> str:
        if self.authorization_code is not None:
            return "authorization_code"
        return "client_credentials"


class TokenBundle(BaseModel):
    """Tokens returned by the token endpoint.

    Fields missing from the response stay None; nothing is defaulted. An
    empty bundle means the endpoint answered successfully with no tokens.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    access_token: str | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    token_type: str | None = None

    @field_validator("access_token", "refresh_token", "id_token", "token_type", mode="before")
    @classmethod
    def drop_non_string(cls, v: Any) -> str | None:
        # A mistyped field is treated as absent rather than failing the bundle
        return v if isinstance(v, str) else None

    def is_empty(self) -> bool:
        return not self.to_dict()

    def to_dict(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)
