from typing import Optional
from urllib.parse import urlsplit


def mask_key(key: Optional[str]) -> str:
    """Keep the first and last four characters of a push key."""
    if not key or len(key) <= 8:
        return "****"
    return f"{key[:4]}****{key[-4:]}"


def mask_url(url: Optional[str]) -> str:
    """Reduce a URL to its host, hiding any path."""
    if not url:
        return ""
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        hostname = None
    if not hostname:
        return url[:20] + "..." if len(url) > 20 else url
    has_path = bool(parts.path) and parts.path != "/"
    return hostname + ("/****" if has_path else "")
