"""Authorization response correlation.

Builds the interactive request URLs and turns the final redirected URL into a
trusted AuthorizationResult by checking the returned state against the one
generated for the request.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from urllib.parse import parse_qs, urlparse

from aad_oauth.models.config import DEFAULT_AUTHORITY_HOST
from aad_oauth.models.flow import (
    DEFAULT_TENANT,
    OOB_REDIRECT_URI,
    RESPONSE_FIELDS,
    ApiVersion,
    AuthorizationRequestState,
    AuthorizationResult,
    Prompt,
)
from aad_oauth.primitives.security import generate_state, states_match
from aad_oauth.primitives.urls import build_admin_consent_url, build_authorization_url

logger = logging.getLogger(__name__)


def _extract_response_params(component: str) -> dict[str, str]:
    query_params = parse_qs(component, keep_blank_values=True)
    return {
        attr: query_params[wire_name][0]
        for wire_name, attr in RESPONSE_FIELDS.items()
        if query_params.get(wire_name)
    }


def parse_authorization_response(
    final_url: str, generated_state: str
) -> AuthorizationResult | None:
    """Parse the redirected URL and validate its state.

    The result is returned when the state matches, or when the provider
    reported an error (the state of an error redirect cannot always be
    checked). Otherwise the response is untrusted: a warning naming both
    states is logged and nothing is returned.

    Args:
        final_url: URL the provider finally redirected to
        generated_state: State sent with the request

    Returns:
        AuthorizationResult, or None if untrusted or empty
    """
    parsed = urlparse(final_url)
    params = _extract_response_params(parsed.query)
    if not params and parsed.fragment:
        params = _extract_response_params(parsed.fragment)

    if not params:
        logger.warning(f"Redirect contained no authorization response: {final_url}")
        return None

    result = AuthorizationResult(**params)

    if result.is_error():
        logger.warning(
            f"Authorization response contained error: {result.error} - "
            f"{result.error_description}"
        )
        return result

    if not states_match(generated_state, result.state):
        logger.warning(
            f"State mismatch, ignoring authorization response. "
            f"Expected: {generated_state}, received: {result.state}"
        )
        return None

    return result


class OAuth2FlowManager:
    """Builds interactive requests and validates their redirects.

    Holds only the read-only authority host, so one instance can serve any
    number of independent flows.
    """

    def __init__(self, authority_host: str = DEFAULT_AUTHORITY_HOST):
        self.authority_host = authority_host

    def start_authorization(
        self,
        client_id: str,
        tenant_id: str = DEFAULT_TENANT,
        redirect_uri: str = OOB_REDIRECT_URI,
        scopes: Iterable[str] = (),
        prompt: Prompt = Prompt.LOGIN,
        api_version: ApiVersion = ApiVersion.V1,
    ) -> tuple[str, AuthorizationRequestState]:
        """Start an authorization code request with a fresh state.

        Returns:
            Tuple of (authorization_url, request_state)
        """
        request = AuthorizationRequestState(
            state=generate_state(),
            client_id=client_id,
            tenant_id=tenant_id,
            redirect_uri=redirect_uri,
            scopes=tuple(scopes),
            prompt=prompt,
            api_version=api_version,
        )
        url = build_authorization_url(
            request.state,
            request.client_id,
            request.tenant_id,
            request.redirect_uri,
            request.scopes,
            request.prompt,
            request.api_version,
            authority_host=self.authority_host,
        )
        logger.debug(f"Started authorization request for client {client_id}")
        return url, request

    def start_admin_consent(
        self,
        client_id: str,
        tenant_id: str = DEFAULT_TENANT,
        redirect_uri: str = OOB_REDIRECT_URI,
        api_version: ApiVersion = ApiVersion.V1,
    ) -> tuple[str, AuthorizationRequestState]:
        """Start an admin consent request with a fresh state.

        Returns:
            Tuple of (admin_consent_url, request_state)
        """
        request = AuthorizationRequestState(
            state=generate_state(),
            client_id=client_id,
            tenant_id=tenant_id,
            redirect_uri=redirect_uri,
            api_version=api_version,
        )
        url = build_admin_consent_url(
            request.state,
            request.client_id,
            request.tenant_id,
            request.redirect_uri,
            request.api_version,
            authority_host=self.authority_host,
        )
        logger.debug(f"Started admin consent request for client {client_id}")
        return url, request

    def handle_redirect(
        self, final_url: str, request: AuthorizationRequestState
    ) -> AuthorizationResult | None:
        result = parse_authorization_response(final_url, request.state)
        if result is not None and result.is_success():
            logger.info(f"Authorization response accepted for client {request.client_id}")
        return result
