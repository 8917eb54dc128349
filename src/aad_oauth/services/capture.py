"""Interactive redirect capture.

The interactive step is an external collaborator: something shows the user
the login page and reports the URL the provider finally redirects to. This
module defines that contract and two implementations, one for the
out-of-band redirect URI (user pastes the final URL) and one for loopback
redirect URIs (system browser plus a local listener).

Capturers block until a terminal redirect is observed. There is no timeout.
"""

from __future__ import annotations

import logging
import re
import socket
import webbrowser
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Protocol
from urllib.parse import urlparse

from aad_oauth.models.errors import RedirectCaptureError, UserAuthCancelledError

logger = logging.getLogger(__name__)

# A redirect is terminal once the provider has put one of these in the
# query or fragment.
_TERMINAL_PARAM = re.compile(r"(?:^|&)(?:error|code|admin_consent)=")

_LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1"}


def is_terminal_redirect(url: str) -> bool:
    """Check if a URL carries an authorization response."""
    parsed = urlparse(url)
    return bool(
        _TERMINAL_PARAM.search(parsed.query) or _TERMINAL_PARAM.search(parsed.fragment)
    )


class RedirectCapturer(Protocol):
    """Protocol for the interactive login surface.

    Allows different strategies for browser interaction:
    - Manual (show URL, user pastes the final URL back)
    - System browser with a loopback listener
    - Stubs returning a canned URL in tests
    """

    def capture(self, url: str) -> str:
        """Open the URL and return the final redirected URL.

        Args:
            url: Authorization or admin consent URL for the user to visit

        Returns:
            Final URL containing error=, code= or admin_consent=
        """
        ...


class ManualRedirectCapturer:
    """Capturer that asks the user to complete the login elsewhere.

    Suited to the out-of-band redirect URI, where the provider shows the
    final URL instead of calling back to the application.
    """

    def __init__(
        self,
        callback: Callable[[str], str] | None = None,
        prompt: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ):
        """Initialize manual redirect capturer.

        Args:
            callback: Optional function given the URL that returns the final
                      URL. When set, prompt and output are not used.
            prompt: Reads one line of user input
            output: Shows instructions to the user
        """
        self.callback = callback
        self.prompt = prompt
        self.output = output

    def capture(self, url: str) -> str:
        if self.callback:
            return self.callback(url)

        self.output(f"Open this URL in a browser and sign in:\n\n  {url}\n")
        while True:
            try:
                line = self.prompt("Paste the URL you were redirected to: ")
            except EOFError as e:
                raise UserAuthCancelledError("Authorization cancelled by user") from e

            final_url = line.strip()
            if not final_url:
                raise UserAuthCancelledError("Authorization cancelled by user")
            if is_terminal_redirect(final_url):
                return final_url

            self.output("That URL does not contain an authorization response.")


class _RedirectHandler(BaseHTTPRequestHandler):
    server: _RedirectServer

    def do_GET(self):
        parsed = urlparse(self.path)
        if parsed.path != self.server.callback_path or not is_terminal_redirect(
            self.path
        ):
            self.send_response(404)
            self.end_headers()
            return

        self.server.captured_path = self.path
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.end_headers()
        self.wfile.write(
            b"<html><body>Authentication complete. You can close this window."
            b"</body></html>"
        )

    def log_message(self, format, *args):
        logger.debug(f"Loopback listener: {format % args}")


class _RedirectServer(HTTPServer):
    def __init__(self, host: str, port: int, callback_path: str):
        if ":" in host:
            self.address_family = socket.AF_INET6
        super().__init__((host, port), _RedirectHandler)
        self.callback_path = callback_path
        self.captured_path: str | None = None


class LoopbackRedirectCapturer:
    """Capturer using the system browser and a local HTTP listener.

    The redirect URI must be an http loopback address with an explicit port,
    registered on the application.
    """

    def __init__(
        self,
        redirect_uri: str,
        open_browser: Callable[[str], bool] = webbrowser.open,
    ):
        parsed = urlparse(redirect_uri)
        if parsed.scheme != "http" or parsed.hostname not in _LOOPBACK_HOSTS:
            raise RedirectCaptureError(
                f"Loopback capture requires an http localhost redirect URI, got "
                f"{redirect_uri}"
            )
        if parsed.port is None:
            raise RedirectCaptureError(
                f"Loopback redirect URI must include a port: {redirect_uri}"
            )

        self.redirect_uri = redirect_uri
        self.host = parsed.hostname
        self.port = parsed.port
        self.callback_path = parsed.path or "/"
        self.open_browser = open_browser

    def capture(self, url: str) -> str:
        try:
            server = _RedirectServer(self.host, self.port, self.callback_path)
        except OSError as e:
            raise RedirectCaptureError(
                f"Cannot listen for redirect on {self.host}:{self.port}: {e}"
            ) from e

        try:
            logger.info("Opening browser for authorization...")
            if not self.open_browser(url):
                logger.warning(f"Could not open a browser; visit this URL: {url}")

            logger.info(f"Waiting for authorization response at {self.redirect_uri}")
            while server.captured_path is None:
                server.handle_request()
        finally:
            server.server_close()

        parsed = urlparse(self.redirect_uri)
        return f"{parsed.scheme}://{parsed.netloc}{server.captured_path}"


def capturer_for(redirect_uri: str) -> RedirectCapturer:
    """Pick a capturer suited to the redirect URI."""
    parsed = urlparse(redirect_uri)
    if (
        parsed.scheme == "http"
        and parsed.hostname in _LOOPBACK_HOSTS
        and parsed.port is not None
    ):
        return LoopbackRedirectCapturer(redirect_uri)
    return ManualRedirectCapturer()
