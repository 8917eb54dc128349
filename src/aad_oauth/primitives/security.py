"""Anti-forgery state generation and comparison."""

from __future__ import annotations

import secrets
import uuid


def generate_state() -> str:
    """Generate a fresh random state value for one authorization request.

    Returns:
        A random UUID4 string, unique per request
    """
    return str(uuid.uuid4())


def states_match(expected: str, actual: str | None) -> bool:
    """Compare the returned state against the generated one.

    Args:
        expected: State sent with the authorization request
        actual: State echoed back in the redirect, if any

    Returns:
        True only if both are present and equal
    """
    if actual is None or not expected:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))
