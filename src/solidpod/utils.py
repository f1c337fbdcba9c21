"""Small text helpers shared across packages."""

import re

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(value: str, default: str = "item") -> str:
    """Lowercase ``value`` and collapse every run of other characters to ``-``."""
    slug = _NON_SLUG.sub("-", str(value).lower()).strip("-")
    return slug or default
