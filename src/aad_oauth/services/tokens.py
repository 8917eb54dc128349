"""Token endpoint exchange service.

Sends a single form-encoded POST to the token endpoint and maps the response
into a TokenBundle. Transport failures are terminal; nothing is retried.
"""

from __future__ import annotations

import logging

import httpx

from aad_oauth.models.errors import TokenExchangeError
from aad_oauth.models.tokens import TokenBundle

logger = logging.getLogger(__name__)


class OAuth2TokenManager:
    """Performs token endpoint requests.

    Uses application/x-www-form-urlencoded encoding as required by OAuth2.
    """

    def __init__(self, timeout: float = 30.0, http_client: httpx.Client | None = None):
        """Initialize token manager.

        Args:
            timeout: HTTP request timeout in seconds
            http_client: Optional preconfigured client; created if omitted
        """
        self.timeout = timeout
        self._http_client = http_client or httpx.Client(timeout=timeout)

    def exchange_token(self, url: str, body: str) -> TokenBundle:
        """Exchange a grant for tokens.

        Args:
            url: Token endpoint URL
            body: Form-encoded request body

        Returns:
            TokenBundle with whichever tokens the endpoint returned; empty
            if the body was malformed

        Raises:
            TokenExchangeError: On network failure or non-success status
        """
        logger.debug(f"Requesting tokens from {url}")

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        try:
            response = self._http_client.post(url, content=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TokenExchangeError(
                f"Token request failed with {e.response.status_code}: "
                f"{self._describe_error(e.response)}"
            ) from e
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"HTTP error during token exchange: {e}") from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> TokenBundle:
        """Map a successful response into a TokenBundle.

        A malformed body is not an error: it yields an empty bundle.
        """
        try:
            response_data = response.json()
        except ValueError as e:
            logger.warning(f"Token response is not JSON: {e}")
            return TokenBundle()

        if not isinstance(response_data, dict):
            logger.warning(
                f"Token response is not an object, got {type(response_data).__name__}"
            )
            return TokenBundle()

        bundle = TokenBundle.model_validate(response_data)

        if bundle.is_empty():
            logger.warning("Token response contained no tokens")
        else:
            logger.info(f"Token exchange successful: received {', '.join(bundle.to_dict())}")
        return bundle

    def _describe_error(self, response: httpx.Response) -> str:
        """Summarize an error response, preferring the OAuth2 error fields."""
        try:
            data = response.json()
        except ValueError:
            return response.text or "No description provided"

        if not isinstance(data, dict):
            return response.text or "No description provided"

        error_code = data.get("error", "unknown_error")
        error_description = data.get("error_description", "No description provided")
        return f"{error_code} - {error_description}"

    def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        self._http_client.close()

    def __enter__(self) -> OAuth2TokenManager:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
