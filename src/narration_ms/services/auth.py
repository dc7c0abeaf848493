"""
Bearer Token Authentication.

The Authorization header must match ``Bearer <token>``. Every verifier
failure is reported as the same "Invalid token" error so callers cannot
tell an expired token from a forged one.
"""
from __future__ import annotations

import re
from typing import Mapping, Optional

from narration_ms.backends.base import IdentityVerifier
from narration_ms.core.errors import UnauthenticatedError
from narration_ms.core.logging import get_logger, set_subject, warn

_LOG = get_logger("narration-ms.auth")

_BEARER_RE = re.compile(r"^Bearer (.+)$")


def extract_bearer_token(headers: Mapping[str, str]) -> Optional[str]:
    """
    Pull the bearer token out of a header mapping.

    Header names are matched case-insensitively. Returns None when the
    header is absent or does not match ``Bearer <token>``.
    """
    value = ""
    for name, header_value in headers.items():
        if name.lower() == "authorization":
            value = header_value or ""
            break

    match = _BEARER_RE.match(value)
    return match.group(1) if match else None


def authenticate(headers: Mapping[str, str], verifier: IdentityVerifier) -> str:
    """
    Verify the request's bearer credential.

    Returns:
        Subject uid.

    Raises:
        UnauthenticatedError: Missing header or failed verification.
    """
    token = extract_bearer_token(headers)
    if token is None:
        raise UnauthenticatedError("Missing bearer token")

    try:
        uid = verifier.verify(token)
    except Exception as e:
        warn(_LOG, "token_rejected", verifier=verifier.name, error_type=type(e).__name__)
        raise UnauthenticatedError("Invalid token") from e

    set_subject(uid)
    return uid
