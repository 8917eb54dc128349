"""Authorization flow models for the Microsoft identity platform.

Contains the per-call request state and the parsed redirect result.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum

OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
DEFAULT_TENANT = "common"


class Prompt(str, Enum):
    """Login prompt behavior requested from the authorization endpoint."""

    LOGIN = "login"
    CONSENT = "consent"
    NONE = "none"


class ApiVersion(str, Enum):
    """Endpoint shape: v1 (Azure AD) or v2 (Microsoft identity platform)."""

    V1 = "v1"
    V2 = "v2"

    @classmethod
    def from_flag(cls, api_v2: bool) -> ApiVersion:
        return cls.V2 if api_v2 else cls.V1


@dataclass(frozen=True)
class AuthorizationRequestState:
    """Parameters of a single authorization or admin consent request.

    Built once per call, used to build the URL and again to validate the
    state echoed back in the redirect.
    """

    state: str
    client_id: str
    tenant_id: str = DEFAULT_TENANT
    redirect_uri: str = OOB_REDIRECT_URI
    scopes: tuple[str, ...] = field(default_factory=tuple)
    prompt: Prompt = Prompt.LOGIN
    api_version: ApiVersion = ApiVersion.V1

    def __post_init__(self) -> None:
        if not self.state:
            raise ValueError("state must not be empty")
        if not self.client_id:
            raise ValueError("client_id must not be empty")
        if not self.tenant_id:
            raise ValueError("tenant_id must not be empty")
        # Accept any iterable of scopes but store an immutable tuple
        object.__setattr__(self, "scopes", tuple(self.scopes))
        object.__setattr__(self, "prompt", Prompt(self.prompt))
        object.__setattr__(self, "api_version", ApiVersion(self.api_version))


# Redirect query parameter -> AuthorizationResult attribute
RESPONSE_FIELDS: dict[str, str] = {
    "error": "error",
    "error_description": "error_description",
    "code": "authorization_code",
    "admin_consent": "admin_consent",
    "session_state": "session_state",
    "tenant": "tenant",
    "state": "state",
}


@dataclass(frozen=True)
class AuthorizationResult:
    """Parameters returned by the provider in the final redirect.

    Every field is optional; None means the provider did not send it, which
    is distinct from an empty value.
    """

    error: str | None = None
    error_description: str | None = None
    authorization_code: str | None = None
    admin_consent: str | None = None
    session_state: str | None = None
    tenant: str | None = None
    state: str | None = None

    def is_success(self) -> bool:
        return self.error is None and (
            self.authorization_code is not None or self.admin_consent is not None
        )

    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, str]:
        """Present fields keyed by their wire names."""
        values = asdict(self)
        return {
            wire_name: values[attr]
            for wire_name, attr in RESPONSE_FIELDS.items()
            if values[attr] is not None
        }
