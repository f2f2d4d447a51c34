"""Redaction — masks credentials in address-like settings before they are logged.

Invariants:
    - Only names containing "address" (case-sensitive) are touched
    - Never raises: values that do not parse as URLs are returned as-is
    - Only the password is masked; scheme, user, host, path, query stay intact
"""

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

MASK = "xxxxx"


def redact(name: str, value: str) -> str:
    """Return value with any URL password replaced by a mask."""
    if "address" not in name:
        return value

    try:
        parts = urlsplit(value)
    except ValueError:
        return value

    userinfo, sep, hostinfo = parts.netloc.rpartition("@")
    if not sep:
        return value
    user, has_password, _ = userinfo.partition(":")
    if not has_password:
        return value

    return urlunsplit(parts._replace(netloc=f"{user}:{MASK}@{hostinfo}"))


def redact_values(name: str, values: Iterable[str]) -> str:
    """Redact each value and render the list as [a,b] for logging."""
    return "[" + ",".join(redact(name, str(v)) for v in values) + "]"


def to_log_fields(values: Mapping[str, Any]) -> dict[str, str]:
    """Stringify resolved settings for a single log line, redacting addresses."""
    fields = {}
    for name, value in sorted(values.items()):
        if isinstance(value, (list, tuple, set, frozenset)):
            fields[name] = redact_values(name, value)
        else:
            fields[name] = redact(name, str(value))
    return fields
