import re
import unicodedata

DEFAULT_SLUG = "evento"


def generate_slug(name: str) -> str:
    normalized = unicodedata.normalize("NFD", name or "")
    normalized = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    normalized = re.sub(r"[^a-z0-9]+", "-", normalized.lower().strip()).strip("-")
    return normalized or DEFAULT_SLUG


def unique_slug(base: str, existing: set[str]) -> str:
    """первый свободный из base, base-2, base-3, ...."""
    slug = generate_slug(base)
    if slug not in existing:
        return slug

    counter = 2
    while f"{slug}-{counter}" in existing:
        counter += 1
    return f"{slug}-{counter}"
