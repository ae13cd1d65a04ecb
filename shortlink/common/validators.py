"""Validation utilities for the short link service."""

from urllib.parse import urlsplit
from typing import Tuple


MAX_URL_LENGTH = 2000
MAX_CREATED_BY_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


def is_valid_url(url: str) -> Tuple[bool, str]:
    """Validate a long URL.

    Args:
        url: The URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "URL is required"

    if len(url) > MAX_URL_LENGTH:
        return False, f"URL is too long (max {MAX_URL_LENGTH} characters)"

    if url != url.strip() or any(c.isspace() for c in url):
        return False, "URL must not contain whitespace"

    try:
        result = urlsplit(url)
        # Accessing .port validates the port component
        result.port
    except ValueError as e:
        return False, f"Invalid URL format: {e}"

    # Check if scheme is http or https
    if result.scheme.lower() not in ("http", "https"):
        return False, "URL must use http or https protocol"

    # Check if a host exists
    if not result.hostname:
        return False, "URL must have a valid domain"

    return True, ""


def normalize_url_key(url: str) -> str:
    """Build the key used to serialize work on a long URL.

    Scheme and host are case-insensitive, so they are lower-cased; the rest
    of the URL is kept verbatim. Two URLs that are equal as strings always
    map to the same key.
    """
    parts = urlsplit(url)
    netloc = parts.netloc
    if parts.hostname:
        userinfo, _, hostport = netloc.rpartition("@")
        netloc = f"{userinfo}@{hostport.lower()}" if userinfo else hostport.lower()
    return parts._replace(scheme=parts.scheme.lower(), netloc=netloc).geturl()


def url_domain(url: str) -> str:
    """Return the lower-cased host of a URL, or '' if it has none."""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""
