"""Header redaction for upload logging."""

# Headers that must never appear in logs
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "x-api-key",
        "proxy-authorization",
    }
)

REDACTED_VALUE = "[REDACTED]"


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact sensitive headers for logging.

    Args:
        headers: Original headers dictionary.

    Returns:
        New dictionary with sensitive values replaced by [REDACTED].
    """
    return {
        key: REDACTED_VALUE if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }
