"""OAuth2 flows against the Microsoft identity platform.

Composes URL building, redirect capture, state validation and token exchange
into the three public operations: authorization code request, token request
and admin consent grant.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from aad_oauth.models.config import AuthSettings
from aad_oauth.models.flow import (
    DEFAULT_TENANT,
    OOB_REDIRECT_URI,
    ApiVersion,
    AuthorizationRequestState,
    AuthorizationResult,
    Prompt,
)
from aad_oauth.models.tokens import TokenBundle, TokenRequest
from aad_oauth.primitives.urls import build_token_request
from aad_oauth.services.capture import RedirectCapturer, capturer_for
from aad_oauth.services.flow import OAuth2FlowManager
from aad_oauth.services.tokens import OAuth2TokenManager

logger = logging.getLogger(__name__)


class AzureOAuth2Client:
    """Client for the authorization code, client credentials and admin
    consent flows.

    Each call is independent: a fresh state is generated per interactive
    request and nothing is cached between calls.
    """

    def __init__(
        self,
        capturer: RedirectCapturer | None = None,
        settings: AuthSettings | None = None,
        token_manager: OAuth2TokenManager | None = None,
    ):
        """Initialize the client.

        Args:
            capturer: Interactive redirect capturer. If omitted, one is picked
                      per call from the redirect URI.
            settings: Authority host and timeout
            token_manager: Token endpoint service; created if omitted
        """
        self.settings = settings or AuthSettings()
        self.capturer = capturer
        self.flow_manager = OAuth2FlowManager(self.settings.authority_host)
        self.token_manager = token_manager or OAuth2TokenManager(
            timeout=self.settings.timeout
        )

    def get_authorization_code(
        self,
        client_id: str,
        tenant_id: str = DEFAULT_TENANT,
        redirect_uri: str = OOB_REDIRECT_URI,
        scopes: Iterable[str] = (),
        prompt: Prompt = Prompt.LOGIN,
        api_v2: bool = False,
    ) -> AuthorizationResult | None:
        """Sign the user in and obtain an authorization code.

        Blocks until the capturer observes the final redirect.

        Returns:
            The trusted result (which may carry a provider error), or None if
            the response was untrusted
        """
        url, request = self.flow_manager.start_authorization(
            client_id,
            tenant_id=tenant_id,
            redirect_uri=redirect_uri,
            scopes=scopes,
            prompt=prompt,
            api_version=ApiVersion.from_flag(api_v2),
        )
        return self._run_interactive(url, request)

    def get_token(
        self,
        client_id: str,
        client_secret: str | None = None,
        tenant_id: str = DEFAULT_TENANT,
        redirect_uri: str = OOB_REDIRECT_URI,
        resource_uri: str | None = None,
        scopes: Iterable[str] = (),
        authorization_code: str | None = None,
        api_v2: bool = False,
    ) -> TokenBundle:
        """Redeem an authorization code, or use client credentials when no
        code is given.

        Raises:
            TokenExchangeError: If the token request fails
        """
        request = TokenRequest(
            client_id=client_id,
            client_secret=client_secret,
            tenant_id=tenant_id,
            redirect_uri=redirect_uri,
            resource_uri=resource_uri,
            scopes=tuple(scopes),
            authorization_code=authorization_code,
            api_version=ApiVersion.from_flag(api_v2),
        )

        if request.api_version is ApiVersion.V2 and not request.scopes:
            logger.warning("v2 token request sent without scopes")

        url, body = build_token_request(request, self.settings.authority_host)
        logger.info(f"Requesting tokens for client {client_id} ({request.grant_type})")
        return self.token_manager.exchange_token(url, body)

    def grant_admin_consent(
        self,
        client_id: str,
        tenant_id: str = DEFAULT_TENANT,
        redirect_uri: str = OOB_REDIRECT_URI,
        api_v2: bool = False,
    ) -> AuthorizationResult | None:
        """Have a tenant administrator grant consent to the application.

        Returns:
            The trusted result, or None if the response was untrusted
        """
        url, request = self.flow_manager.start_admin_consent(
            client_id,
            tenant_id=tenant_id,
            redirect_uri=redirect_uri,
            api_version=ApiVersion.from_flag(api_v2),
        )
        return self._run_interactive(url, request)

    def _run_interactive(
        self, url: str, request: AuthorizationRequestState
    ) -> AuthorizationResult | None:
        capturer = self.capturer or capturer_for(request.redirect_uri)
        logger.debug(f"Handing {url} to {type(capturer).__name__}")
        final_url = capturer.capture(url)
        return self.flow_manager.handle_redirect(final_url, request)

    def close(self) -> None:
        """Close the token endpoint connection."""
        self.token_manager.close()

    def __enter__(self) -> AzureOAuth2Client:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
