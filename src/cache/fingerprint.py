# src/cache/fingerprint.py — v3
"""Content fingerprints used as cache-key components and request identity.

A fingerprint is a 128-bit BLAKE2b digest of the exact UTF-8 bytes of the
text. Nothing is normalized: case, punctuation and whitespace all change the
fingerprint, so two requests share a cache entry only when their text is
identical.
"""

from __future__ import annotations

import hashlib

_DIGEST_SIZE = 16
# Separator for multi-part fingerprints; cannot appear in ordinary text.
_PART_SEPARATOR = "\x1f"


def content_fingerprint(text: str) -> str:
    """Return the 32-char hex fingerprint of text (empty string allowed)."""
    return hashlib.blake2b(
        text.encode("utf-8", errors="surrogatepass"), digest_size=_DIGEST_SIZE
    ).hexdigest()


def fingerprint_parts(*parts: str) -> str:
    """Fingerprint an ordered sequence of strings.

    Part boundaries are significant: ("ab", "c") and ("a", "bc") differ.
    """
    joined = _PART_SEPARATOR.join(f"{len(p)}{_PART_SEPARATOR}{p}" for p in parts)
    return content_fingerprint(joined)
