"""Utility functions for QueryBridge operations.

Functions:
    redact_connection_string: Mask credentials in a connection string
    redact_text: Mask credentials in any connection string embedded in text
    truncate_string: Truncate text to a maximum length
    compute_hash: Stable short hash used to correlate queries in logs
    utc_timestamp: Current time as an ISO-8601 UTC string

Example:
    >>> redact_connection_string("postgresql://app:s3cret@db:5432/shop")
    'postgresql://app:***@db:5432/shop'
"""

import hashlib
import re
from datetime import datetime, timezone

# scheme://userinfo@ where userinfo runs to the last "@" of the authority,
# so an unencoded "@" inside a password is masked with the rest of it.
_CREDENTIALS_PATTERN = re.compile(
    r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.\-]*://)(?P<userinfo>[^/?#\s\"'<>]*)@"
)


def _mask(match: "re.Match[str]") -> str:
    user, sep, _ = match.group("userinfo").partition(":")
    if not sep:
        return f"{match.group('scheme')}***@"
    return f"{match.group('scheme')}{user}:***@"


def redact_connection_string(connection_string: str) -> str:
    """Mask the password of a connection string.

    The user name and endpoint are kept so redacted values stay useful in
    logs. A bare credential (``scheme://token@host``) is masked entirely.

    Args:
        connection_string: Connection string to redact

    Returns:
        Connection string safe to log or display
    """
    if not connection_string:
        return connection_string
    return _CREDENTIALS_PATTERN.sub(_mask, connection_string)


def redact_text(text: str) -> str:
    """Mask credentials of every connection string found in free text.

    Driver error messages occasionally echo the DSN they failed on.

    Args:
        text: Arbitrary text

    Returns:
        Text with embedded credentials masked
    """
    if "://" not in text:
        return text
    return _CREDENTIALS_PATTERN.sub(_mask, text)


def truncate_string(text: str, max_length: int, *, suffix: str = "...") -> str:
    """Truncate string to maximum length.

    Args:
        text: String to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to add when truncating

    Returns:
        Truncated string

    Example:
        >>> truncate_string("SELECT * FROM orders", 10)
        'SELECT ...'
    """
    if len(text) <= max_length:
        return text

    if len(suffix) >= max_length:
        return suffix[:max_length]

    return text[:max_length - len(suffix)] + suffix


def compute_hash(text: str, *, length: int = 16) -> str:
    """Compute a short SHA-256 digest of a string.

    Args:
        text: String to hash
        length: Number of hex characters to keep

    Returns:
        Hex digest prefix
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]


def utc_timestamp() -> str:
    """Return the current time as an ISO-8601 string with a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
