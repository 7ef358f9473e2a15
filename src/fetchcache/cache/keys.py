"""Content-addressed cache keys.

Keys are SHA-256 hashes of the *requested* URL, never the post-redirect URL,
so two URLs that redirect to the same place are cached independently.
"""

from __future__ import annotations

import hashlib


def derive_key(url: str) -> str:
    """Return the 64-character lowercase hex SHA-256 of *url*'s UTF-8 bytes."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()
