"""Hashing helpers for benchtrack.

Used to derive stable, filesystem-safe document names from repository URLs.
"""

from __future__ import annotations

import hashlib
import re

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def sha256_hex(text: str) -> str:
    """
    Compute full SHA256 hex digest.

    Args:
        text: Input string to hash.

    Returns:
        64-character hexadecimal SHA256 digest.

    Example:
        >>> len(sha256_hex("hello"))
        64
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def sha256_short(text: str, length: int = 12) -> str:
    """
    Compute truncated SHA256 hex digest.

    Args:
        text: Input string to hash.
        length: Number of characters to return (default 12).

    Returns:
        Truncated hexadecimal SHA256 digest.
    """
    return sha256_hex(text)[:length]


def repo_slug(repo_url: str, max_length: int = 48) -> str:
    """
    Build a filesystem-safe, collision-resistant name for a repository URL.

    The readable part keeps the last path segments of the URL; the hash
    suffix keeps distinct URLs apart even when their slugs collide.

    Args:
        repo_url: Repository URL.
        max_length: Maximum length of the readable part.

    Returns:
        Slug like ``paritytech-polkadot-rest-api-1a2b3c4d5e6f``.

    Example:
        >>> repo_slug("https://github.com/paritytech/polkadot-rest-api")[:28]
        'paritytech-polkadot-rest-api'
    """
    stripped = re.sub(r"^[a-z][a-z0-9+.-]*://", "", repo_url.strip().lower())
    parts = [p for p in stripped.split("/") if p]
    readable = "-".join(parts[1:] or parts)
    readable = _SLUG_RE.sub("-", readable).strip("-")[-max_length:].strip("-")
    suffix = sha256_short(repo_url)
    return f"{readable}-{suffix}" if readable else suffix
