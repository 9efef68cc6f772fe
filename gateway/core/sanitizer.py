import re
from typing import Iterable, Optional

REDACTED = "[REDACTED]"

# Connection strings go first so the whole URL is replaced, not just its
# password fragment. The greedy \S*@ keeps passwords that contain '@'.
CONNECTION_STRING_RE = re.compile(
    r"\b[a-z][a-z0-9+.\-]*://[^\s:/@]*:\S*@[^\s/?#'\"]+(?:/[^\s?#'\"]*)?(?:\?[^\s'\"]*)?",
    re.IGNORECASE,
)

SECRET_KEY_VALUE_RE = re.compile(
    r"((?:password|passwd|pwd|secret|token|key)\s*[=:]\s*)(?:'[^']*'|\"[^\"]*\"|\S+)",
    re.IGNORECASE,
)

SENSITIVE_PATTERNS = (
    (CONNECTION_STRING_RE, REDACTED),
    (SECRET_KEY_VALUE_RE, r"\1" + REDACTED),
)


def sanitize_message(message: str, secrets: Optional[Iterable[str]] = None) -> str:
    """
    Scrub credential-bearing fragments from text bound for a caller or a log.

    Args:
        message: Raw text, usually str() of a driver exception.
        secrets: Known secret values (e.g. a target's password) to scrub verbatim.

    Returns:
        The text with every match replaced by the redaction marker.

    Example:
        sanitize_message("password=hunter2 rejected")  # "password=[REDACTED] rejected"
    """
    sanitized = str(message)

    for secret in secrets or ():
        if secret:
            sanitized = sanitized.replace(secret, REDACTED)

    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    return sanitized
