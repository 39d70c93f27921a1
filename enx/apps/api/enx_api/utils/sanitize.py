"""Log value sanitizer.

Admin requests carry bearer JWTs and the directory is full of email
addresses, so anything handed to the JSON formatter passes through here:

 1. strings longer than MAX_STR_LOG are replaced by a length + sha256 marker
 2. bearer tokens, raw JWTs and api keys are redacted
 3. email addresses are masked to their first character and domain
"""

import hashlib
import re
import traceback
from typing import Any

MAX_STR_LOG: int = 2048
MAX_DEPTH: int = 6

REDACTED = "[REDACTED]"

# Dict keys whose values are never logged (compared lower-cased)
_SENSITIVE_KEYS: frozenset[str] = frozenset({
    "authorization", "token", "access_token", "refresh_token",
    "apikey", "api_key", "password", "secret", "service_role_key",
})

_SECRET_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"Bearer \S+"),
    re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*"),
    re.compile(r"apikey=\S+"),
    re.compile(r"api_key=\S+"),
]

_EMAIL_PATTERN = re.compile(r"([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})")


def mask_email(email: str) -> str:
    """Mask the local part of an email address.

    >>> mask_email("jane.doe@example.com")
    'j***@example.com'
    """
    if not email or "@" not in email:
        return email
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


def sanitize_str(s: str) -> str:
    """Redact secrets and mask emails inside a string."""
    if not isinstance(s, str):
        return s  # type: ignore[return-value]

    if len(s) > MAX_STR_LOG:
        digest = hashlib.sha256(s.encode("utf-8", errors="replace")).hexdigest()[:16]
        return f"[TRUNCATED len={len(s)} sha256={digest}]"

    result = s
    for pattern in _SECRET_PATTERNS:
        result = pattern.sub(REDACTED, result)
    return _EMAIL_PATTERN.sub(r"\1***@\2", result)


def sanitize_obj(obj: Any, depth: int = 0) -> Any:
    """Recursively sanitize a log extra value."""
    if depth >= MAX_DEPTH:
        return "[DEPTH_LIMIT]"

    if isinstance(obj, dict):
        return {
            key: REDACTED
            if isinstance(key, str) and key.lower() in _SENSITIVE_KEYS
            else sanitize_obj(value, depth + 1)
            for key, value in obj.items()
        }

    if isinstance(obj, (list, tuple)):
        return [sanitize_obj(item, depth + 1) for item in obj]

    if isinstance(obj, str):
        return sanitize_str(obj)

    return obj


def sanitize_exc(exc_info: tuple) -> str:
    """Format an exc_info tuple into a sanitized traceback string."""
    _type, value, _tb = exc_info
    if value is None:
        return ""
    try:
        te = traceback.TracebackException.from_exception(value, capture_locals=False)
        return sanitize_str("".join(te.format()))
    except Exception:
        return "[TRACEBACK_FORMAT_ERROR]"
