import html
import re
from typing import Optional

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Escape HTML special characters before user text goes into markup (emails).
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return html.escape(value, quote=True)


def validate_and_sanitize_input(value: str, max_length: int = 500, min_length: int = 0) -> str:
    """
    Validate and clean free text typed by users (contact form, messages, reviews).

    The text is stored as written, minus surrounding whitespace and control
    characters. Escaping happens where it is rendered into HTML.

    Raises:
        ValueError: If input is too short or too long
    """
    value = str(value or "").strip()

    if len(value) < min_length:
        raise ValueError(f"Input must be at least {min_length} characters")
    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    return CONTROL_CHARS.sub("", value)
