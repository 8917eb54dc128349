"""Exception hierarchy for Microsoft identity platform OAuth2 errors.

Provider errors returned in a redirect are data, not exceptions: they come
back as a populated AuthorizationResult. Only failures the caller cannot
branch on are raised.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all OAuth2 related errors."""

    pass


class AuthorizationError(OAuth2Error):
    """Raised when the interactive authorization step fails."""

    pass


class UserAuthCancelledError(AuthorizationError):
    """Raised when the user abandons the authorization interaction."""

    pass


class RedirectCaptureError(AuthorizationError):
    """Raised when the redirect capturer cannot observe the redirect.

    This indicates a local setup problem (unusable redirect URI, port in use),
    not a provider-side failure.
    """

    pass


class TokenError(OAuth2Error):
    """Base exception for token endpoint failures."""

    pass


class TokenExchangeError(TokenError):
    """Raised when the token request fails at the transport level.

    Covers network failures and non-success status codes. The request is
    never retried.
    """

    pass
