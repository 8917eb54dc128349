"""Tests for interactive redirect capture."""

import socket
import threading
from unittest.mock import MagicMock

import httpx
import pytest

from aad_oauth.models.errors import RedirectCaptureError, UserAuthCancelledError
from aad_oauth.services.capture import (
    LoopbackRedirectCapturer,
    ManualRedirectCapturer,
    capturer_for,
    is_terminal_redirect,
)


def _free_port(host: str = "127.0.0.1") -> int:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    try:
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            sock.bind((host, 0))
            return sock.getsockname()[1]
    except OSError:
        pytest.skip(f"cannot bind to {host}")


class TestIsTerminalRedirect:
    @pytest.mark.parametrize(
        "url",
        [
            "urn:ietf:wg:oauth:2.0:oob?code=abc&state=s",
            "https://myapp.com/cb?state=s&error=access_denied",
            "https://myapp.com/cb?admin_consent=True&tenant=t",
            "https://myapp.com/cb#code=abc",
        ],
    )
    def test_terminal_urls(self, url):
        assert is_terminal_redirect(url)

    @pytest.mark.parametrize(
        "url",
        [
            "https://login.microsoftonline.com/common/oauth2/authorize?client_id=x",
            "https://myapp.com/cb?xcode=abc",
            "https://myapp.com/cb",
        ],
    )
    def test_non_terminal_urls(self, url):
        assert not is_terminal_redirect(url)


class TestManualRedirectCapturer:
    """Test the paste-back capturer."""

    def test_callback_is_used_when_given(self):
        # Arrange
        callback = MagicMock(return_value="urn:ietf:wg:oauth:2.0:oob?code=abc")
        capturer = ManualRedirectCapturer(callback=callback)

        # Act
        final_url = capturer.capture("https://login.example.com/authorize")

        # Assert
        assert final_url == "urn:ietf:wg:oauth:2.0:oob?code=abc"
        callback.assert_called_once_with("https://login.example.com/authorize")

    def test_prompts_until_terminal_url_is_pasted(self):
        # Arrange
        prompt = MagicMock(
            side_effect=[
                "https://login.microsoftonline.com/common/login",
                "  urn:ietf:wg:oauth:2.0:oob?code=abc&state=s  ",
            ]
        )
        output = MagicMock()
        capturer = ManualRedirectCapturer(prompt=prompt, output=output)

        # Act
        final_url = capturer.capture("https://login.example.com/authorize")

        # Assert
        assert final_url == "urn:ietf:wg:oauth:2.0:oob?code=abc&state=s"
        assert prompt.call_count == 2
        assert "https://login.example.com/authorize" in output.call_args_list[0][0][0]

    def test_empty_line_cancels(self):
        capturer = ManualRedirectCapturer(prompt=MagicMock(return_value=""), output=MagicMock())

        with pytest.raises(UserAuthCancelledError):
            capturer.capture("https://login.example.com/authorize")

    def test_eof_cancels(self):
        capturer = ManualRedirectCapturer(
            prompt=MagicMock(side_effect=EOFError), output=MagicMock()
        )

        with pytest.raises(UserAuthCancelledError):
            capturer.capture("https://login.example.com/authorize")


class TestLoopbackRedirectCapturer:
    """Test the system browser plus local listener capturer."""

    def test_rejects_non_loopback_redirect(self):
        with pytest.raises(RedirectCaptureError):
            LoopbackRedirectCapturer("https://myapp.com/callback")

    def test_rejects_redirect_without_port(self):
        with pytest.raises(RedirectCaptureError):
            LoopbackRedirectCapturer("http://localhost/callback")

    @pytest.mark.parametrize(
        ("host", "netloc_host"), [("127.0.0.1", "127.0.0.1"), ("::1", "[::1]")]
    )
    def test_captures_terminal_redirect(self, host, netloc_host):
        # Arrange
        base = f"http://{netloc_host}:{_free_port(host)}"
        redirect_uri = f"{base}/callback"
        status_codes: list[int] = []

        def visit():
            # Browser noise first, then the provider's redirect
            with httpx.Client(timeout=5.0, trust_env=False) as client:
                status_codes.append(client.get(f"{base}/favicon.ico").status_code)
                status_codes.append(
                    client.get(f"{redirect_uri}?code=abc&state=s").status_code
                )

        visitor = threading.Thread(target=visit, daemon=True)

        def browser(url: str) -> bool:
            visitor.start()
            return True

        capturer = LoopbackRedirectCapturer(redirect_uri, open_browser=browser)

        # Act
        final_url = capturer.capture("https://login.example.com/authorize")
        visitor.join(timeout=5.0)

        # Assert
        assert final_url == f"{redirect_uri}?code=abc&state=s"
        assert status_codes == [404, 200]

    def test_port_in_use_raises(self):
        # Arrange
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            sock.listen(1)
            port = sock.getsockname()[1]
            capturer = LoopbackRedirectCapturer(
                f"http://127.0.0.1:{port}/callback", open_browser=MagicMock()
            )

            # Act & Assert
            with pytest.raises(RedirectCaptureError):
                capturer.capture("https://login.example.com/authorize")


class TestCapturerFor:
    @pytest.mark.parametrize(
        "redirect_uri",
        [
            "http://localhost:8400/callback",
            "http://127.0.0.1:8400/callback",
            "http://[::1]:8400/callback",
        ],
    )
    def test_loopback_redirect_gets_loopback_capturer(self, redirect_uri):
        capturer = capturer_for(redirect_uri)

        assert isinstance(capturer, LoopbackRedirectCapturer)
        assert capturer.port == 8400

    @pytest.mark.parametrize(
        "redirect_uri",
        ["urn:ietf:wg:oauth:2.0:oob", "https://myapp.com/cb", "http://localhost/cb"],
    )
    def test_other_redirects_get_manual_capturer(self, redirect_uri):
        assert isinstance(capturer_for(redirect_uri), ManualRedirectCapturer)
