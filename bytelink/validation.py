"""Input validation for original URLs and custom short codes."""

import re
from urllib.parse import urlsplit

import validators

from bytelink.exceptions import InvalidCodeError, InvalidUrlError

__all__ = ["validate_original_url", "validate_custom_code", "build_short_url", "SHORT_CODE_PATTERN"]

SHORT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{1,20}$")


def validate_original_url(value: str | None) -> str:
    """Return the trimmed URL, or raise InvalidUrlError unless it has a scheme and a host.

    The host must be a public style domain or an IP address: ``validators.url``
    rejects single label hosts such as ``localhost`` or ``intranet``.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidUrlError("Please provide a valid URL")
    candidate = value.strip()
    parts = urlsplit(candidate)
    if not parts.scheme or not parts.netloc or not validators.url(candidate):
        raise InvalidUrlError(f"Invalid URL provided: {candidate!r}")
    return candidate


def validate_custom_code(value: str, max_length: int = 20) -> str:
    if not isinstance(value, str) or not SHORT_CODE_PATTERN.fullmatch(value):
        raise InvalidCodeError("Custom code can only contain letters and numbers (1-20 characters)")
    if len(value) > max_length:
        raise InvalidCodeError(f"Custom code must be at most {max_length} characters")
    return value


def build_short_url(base_url: str, short_code: str) -> str:
    return f"{base_url.rstrip('/')}/{short_code}"
