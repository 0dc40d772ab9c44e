from __future__ import annotations

from urllib.parse import urlparse


def normalize_domain(value: str) -> str:
    """Reduce ``https://www.Example.com/path`` or ``www.example.com`` to ``example.com``."""
    value = value.strip().lower()
    if "://" not in value:
        value = f"//{value}"
    host = urlparse(value).netloc
    if host.startswith("www."):
        host = host[4:]
    return host


def url_contains_domain(url: str | None, domain: str) -> bool:
    if not url or not domain:
        return False
    return domain.lower() in url.lower()
