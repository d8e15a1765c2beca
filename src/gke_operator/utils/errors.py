"""Error sanitization utilities to prevent credential leakage."""

from __future__ import annotations

import re
from typing import Any

# Whole blocks that must never reach logs or conditions
_BLOCK_PATTERNS = [
    (re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----", re.DOTALL), "[REDACTED PRIVATE KEY]"),
    (re.compile(r"ya29\.[A-Za-z0-9_\-\.]+"), "[REDACTED TOKEN]"),
    (re.compile(r"(?i)bearer\s+[A-Za-z0-9_\-\.=]+"), "Bearer [REDACTED]"),
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "private_key_id",
    "private_key",
    "client_secret",
    "access_token",
    "refresh_token",
    "password",
    "clientKey",
    "token",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern, replacement in _BLOCK_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    for field in SENSITIVE_FIELDS:
        # Matches `field: value`, `field=value` and `"field": "value"`
        sanitized = re.sub(
            rf"(\"?{field}\"?\s*[:=]\s*)(\"[^\"]*\"|[^\s,;\)\}}]+)",
            r"\1[REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = {k.lower() for k in SENSITIVE_FIELDS | (sensitive_keys or set())}
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        if key.lower() in all_sensitive:
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
