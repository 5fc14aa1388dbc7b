import re

from exceptions import InvalidTagError

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")

MIN_TAG_LENGTH = 3
MAX_TAG_LENGTH = 25


def sanitize_tag(tag):
    """
    Strip '#', whitespace and any other non-alphanumeric characters from a
    clan or player tag. Raises InvalidTagError when what is left is unusable.
    """
    if tag is None or not str(tag).strip():
        raise InvalidTagError("Tag cannot be empty")

    sanitized = _NON_ALPHANUMERIC.sub("", str(tag).strip())

    if not sanitized:
        raise InvalidTagError("Tag must contain at least one letter or number")
    if len(sanitized) > MAX_TAG_LENGTH:
        raise InvalidTagError(f"Tag cannot exceed {MAX_TAG_LENGTH} characters")
    if len(sanitized) < MIN_TAG_LENGTH:
        raise InvalidTagError(f"Tag must be at least {MIN_TAG_LENGTH} characters long")

    return sanitized
