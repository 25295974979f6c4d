"""
Secure logging helpers for audit and denial logs.

Policy decisions are logged with caller-supplied values (user IDs, endpoint
paths, status reasons). These helpers keep such values from forging log
lines (CWE-117) or leaking exception text to log consumers.

Security References:
- OWASP Logging Cheat Sheet: https://cheatsheetseries.owasp.org/cheatsheets/Logging_Cheat_Sheet.html
"""

import re
from typing import Any

# Maximum length for logged user input to prevent log flooding
MAX_LOG_INPUT_LENGTH = 200

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def sanitize_for_log(value: Any, max_length: int = MAX_LOG_INPUT_LENGTH) -> str:
    """
    Sanitize a value for safe logging by removing CRLF and limiting length.

    Args:
        value: Value to sanitize (will be converted to string)
        max_length: Maximum length of output (default: 200)

    Returns:
        Sanitized string safe for logging

    Example:
        >>> sanitize_for_log("ban\\n[FAKE] role granted")
        'ban [FAKE] role granted'
    """
    text = str(value)
    text = text.replace("\r", " ").replace("\n", " ").replace("\t", " ")
    text = _CONTROL_CHARS.sub(" ", text)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def get_safe_error_info(exception: Exception) -> dict[str, str]:
    """
    Extract safe information from an exception for logging.

    Returns only the exception type, never the message, which may carry
    user input or internal details.

    Example:
        >>> get_safe_error_info(ValueError("user input here"))
        {'error_type': 'ValueError'}
    """
    return {"error_type": type(exception).__name__}
