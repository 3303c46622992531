"""Input sanitization and validation utilities."""

import re
import unicodedata
from urllib.parse import urlparse

import bleach


# Maximum lengths for different field types
MAX_LENGTHS = {
    "name": 100,
    "email": 255,
    "password": 128,
    "title": 255,
    "excerpt": 300,
    "slug": 255,
    "url": 1024,
    "default": 255,
}

# Allowed characters patterns
PATTERNS = {
    "slug": re.compile(r"^[a-z0-9-]+$"),
    "email": re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"),
}

_NON_SLUG_RUN = re.compile(r"[^a-z0-9]+")


def sanitize_string(
    value: str,
    max_length: int = MAX_LENGTHS["default"],
    strip_html: bool = True,
    allow_newlines: bool = False,
) -> str:
    """
    Sanitize a string input.

    - Strips leading/trailing whitespace
    - Removes or escapes HTML
    - Truncates to max length
    - Optionally removes newlines
    """
    if not value:
        return ""

    # Strip whitespace
    value = value.strip()

    # Remove HTML tags if requested
    if strip_html:
        value = bleach.clean(value, tags=[], strip=True)

    # Remove or normalize newlines
    if not allow_newlines:
        value = " ".join(value.split())

    # Truncate to max length
    if len(value) > max_length:
        value = value[:max_length]

    return value


def sanitize_name(value: str) -> str:
    """Sanitize a person name."""
    return sanitize_string(value, max_length=MAX_LENGTHS["name"])


def sanitize_email(value: str) -> str:
    """Trim and lower-case an email so it can be used as an identity key."""
    value = sanitize_string(value, max_length=MAX_LENGTHS["email"]).lower()
    return value


def validate_email(value: str) -> bool:
    """Validate email format."""
    if not value or len(value) > MAX_LENGTHS["email"]:
        return False
    return bool(PATTERNS["email"].match(value))


def derive_slug(title: str) -> str:
    """
    Build a URL slug from a title.

    Lower-cases, strips diacritics, collapses every run of characters outside
    [a-z0-9] into one hyphen and trims hyphens at both ends.
    "Hello, World! Café" -> "hello-world-cafe"
    """
    if not title:
        return ""
    value = unicodedata.normalize("NFD", title.lower())
    value = "".join(c for c in value if not unicodedata.combining(c))
    value = _NON_SLUG_RUN.sub("-", value)
    return value.strip("-")


def validate_slug(value: str) -> bool:
    """Validate slug format."""
    if not value or len(value) > MAX_LENGTHS["slug"]:
        return False
    return bool(PATTERNS["slug"].match(value))


def validate_absolute_url(value: str) -> bool:
    """True for absolute http(s) URLs."""
    if not value or len(value) > MAX_LENGTHS["url"]:
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
