"""Endpoint URL and request body construction for the Microsoft identity platform.

Pure functions building the authorization, admin consent and token
endpoint requests for both the v1 (``/oauth2/...``) and v2
(``/oauth2/v2.0/...``) endpoint shapes.

Parameter order in the generated URLs is fixed, so URLs are assembled by hand
rather than with urlencode, which would also re-encode the OOB redirect URI.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from urllib.parse import quote

from aad_oauth.models.config import DEFAULT_AUTHORITY_HOST
from aad_oauth.models.flow import OOB_REDIRECT_URI, ApiVersion, Prompt
from aad_oauth.models.tokens import TokenRequest

logger = logging.getLogger(__name__)


def _escape(value: str) -> str:
    return quote(value, safe="")


def encode_redirect_uri(redirect_uri: str) -> str:
    """Percent-encode a redirect URI, leaving the OOB sentinel verbatim."""
    if redirect_uri == OOB_REDIRECT_URI:
        return redirect_uri
    return _escape(redirect_uri)


def encode_scopes(scopes: Iterable[str]) -> str | None:
    """Space-join and percent-encode scopes.

    Returns:
        The encoded scope value, or None if no scopes were given
    """
    scopes = list(scopes)
    if not scopes:
        return None
    return _escape(" ".join(scopes))


def _tenant_base(authority_host: str, tenant_id: str) -> str:
    return f"{authority_host.rstrip('/')}/{tenant_id}"


def build_authorization_url(
    state: str,
    client_id: str,
    tenant_id: str,
    redirect_uri: str,
    scopes: Iterable[str],
    prompt: Prompt,
    api_version: ApiVersion,
    authority_host: str = DEFAULT_AUTHORITY_HOST,
) -> str:
    """Build the authorization endpoint URL for the authorization code flow."""
    api_version = ApiVersion(api_version)
    if api_version is ApiVersion.V2:
        endpoint = f"{_tenant_base(authority_host, tenant_id)}/oauth2/v2.0/authorize"
    else:
        endpoint = f"{_tenant_base(authority_host, tenant_id)}/oauth2/authorize"

    url = (
        f"{endpoint}?response_type=code"
        f"&client_id={client_id}"
        f"&redirect_uri={encode_redirect_uri(redirect_uri)}"
        f"&state={state}"
        f"&prompt={Prompt(prompt).value.lower()}"
    )
    if api_version is ApiVersion.V2:
        url += "&response_mode=query"

    encoded_scopes = encode_scopes(scopes)
    if encoded_scopes is not None:
        url += f"&scope={encoded_scopes}"

    logger.debug(f"Built {api_version.value} authorization URL: {url}")
    return url


def build_admin_consent_url(
    state: str,
    client_id: str,
    tenant_id: str,
    redirect_uri: str,
    api_version: ApiVersion,
    authority_host: str = DEFAULT_AUTHORITY_HOST,
) -> str:
    """Build the URL a tenant administrator visits to grant consent."""
    api_version = ApiVersion(api_version)
    encoded_redirect = encode_redirect_uri(redirect_uri)
    base = _tenant_base(authority_host, tenant_id)

    if api_version is ApiVersion.V2:
        url = (
            f"{base}/adminconsent?client_id={client_id}"
            f"&redirect_uri={encoded_redirect}"
            f"&state={state}"
            "&prompt=login"
        )
    else:
        url = (
            f"{base}/oauth2/authorize?response_type=code"
            f"&client_id={client_id}"
            f"&redirect_uri={encoded_redirect}"
            f"&state={state}"
            "&prompt=admin_consent"
        )

    logger.debug(f"Built {api_version.value} admin consent URL: {url}")
    return url


def build_token_request(
    request: TokenRequest,
    authority_host: str = DEFAULT_AUTHORITY_HOST,
) -> tuple[str, str]:
    """Build the token endpoint URL and form-encoded body.

    The grant type depends only on whether an authorization code is present;
    resource and scope are appended whenever they are supplied.

    Returns:
        Tuple of (token_url, form_body)
    """
    base = _tenant_base(authority_host, request.tenant_id)
    if request.api_version is ApiVersion.V2:
        url = f"{base}/oauth2/v2.0/token"
    else:
        url = f"{base}/oauth2/token"

    parts = [
        f"client_id={_escape(request.client_id)}",
        f"client_secret={_escape(request.client_secret or '')}",
        f"redirect_uri={encode_redirect_uri(request.redirect_uri)}",
    ]

    if request.authorization_code is not None:
        parts.append("grant_type=authorization_code")
        parts.append(f"code={_escape(request.authorization_code)}")
    else:
        parts.append("grant_type=client_credentials")

    if request.resource_uri is not None:
        parts.append(f"resource={_escape(request.resource_uri)}")

    encoded_scopes = encode_scopes(request.scopes)
    if encoded_scopes is not None:
        parts.append(f"scope={encoded_scopes}")

    # Never log the body: it carries the client secret
    logger.debug(
        f"Built {request.api_version.value} token request for {url}: "
        f"grant_type={request.grant_type}, client_id={request.client_id}, "
        f"resource={'none' if request.resource_uri is None else request.resource_uri}"
    )
    return url, "&".join(parts)
