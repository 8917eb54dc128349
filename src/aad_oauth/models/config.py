"""Process-wide settings for talking to the identity provider."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_AUTHORITY_HOST = "https://login.microsoftonline.com"


@dataclass(frozen=True)
class AuthSettings:
    """Read-only settings shared by every flow.

    authority_host is the base authentication URL; override it to point the
    flows at a sovereign cloud or a test double.
    """

    authority_host: str = DEFAULT_AUTHORITY_HOST
    timeout: float = 30.0  # seconds

    def __post_init__(self) -> None:
        if not self.authority_host:
            raise ValueError("authority_host must not be empty")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        object.__setattr__(self, "authority_host", self.authority_host.rstrip("/"))

    @classmethod
    def from_env(cls) -> AuthSettings:
        """Build settings from AAD_OAUTH_* environment variables."""
        timeout = os.getenv("AAD_OAUTH_TIMEOUT")
        return cls(
            authority_host=os.getenv("AAD_OAUTH_AUTHORITY_HOST", DEFAULT_AUTHORITY_HOST),
            timeout=float(timeout) if timeout else 30.0,
        )
