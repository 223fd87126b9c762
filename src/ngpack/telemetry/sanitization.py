"""Sanitize error messages before they are recorded on spans or logs."""

from __future__ import annotations

import re

_SENSITIVE_KEY_PATTERN = re.compile(
    r"(password|secret|token|api_key|authorization|_auth|credential)"
    r"\s*[=:]\s*\S+",
    re.IGNORECASE,
)
_URL_CREDENTIAL_PATTERN = re.compile(
    r"://[^@/\s]+:[^@/\s]+@",
)


def sanitize_error_message(msg: str, max_length: int = 500) -> str:
    """Redact credentials from ``msg`` and truncate it.

    Registry URLs and ``.npmrc`` style ``_authToken=...`` values can leak into
    tool output, so both URL userinfo and ``key=value`` pairs for sensitive
    keys are redacted.

    Args:
        msg: Raw error message to sanitize.
        max_length: Maximum length of returned message.

    Returns:
        Sanitized and truncated error message.

    Example:
        >>> sanitize_error_message("npm ERR! token=abc123 rejected")
        'npm ERR! token=<REDACTED> rejected'
    """
    sanitized = _URL_CREDENTIAL_PATTERN.sub("://<REDACTED>@", msg)
    sanitized = _SENSITIVE_KEY_PATTERN.sub(
        lambda m: m.group(0).split("=", 1)[0].split(":", 1)[0] + "=<REDACTED>"
        if "=" in m.group(0)
        else m.group(0).split(":", 1)[0] + ": <REDACTED>",
        sanitized,
    )
    return sanitized[:max_length]


__all__ = ["sanitize_error_message"]
