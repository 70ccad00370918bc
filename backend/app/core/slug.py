"""Identifier helpers for servers created without an explicit id."""

from __future__ import annotations

import re
import secrets
import unicodedata
from typing import Callable

MAX_ID_LENGTH = 64
_SUFFIX_BYTES = 3


def slugify(value: str) -> str:
    """Lowercase *value* and collapse anything that is not a word character into dashes."""

    normalized = unicodedata.normalize("NFKC", value).strip().casefold()
    slug = re.sub(r"[^\w]+", "-", normalized, flags=re.UNICODE)
    return re.sub(r"-+", "-", slug).strip("-")


def allocate_server_id(name: str, exists: Callable[[str], bool]) -> str:
    """Derive a readable server id from *name*, adding a random suffix on collision."""

    base = slugify(name)[: MAX_ID_LENGTH - 2 * _SUFFIX_BYTES - 1].rstrip("-")
    candidate = base or secrets.token_hex(_SUFFIX_BYTES)
    while exists(candidate):
        suffix = secrets.token_hex(_SUFFIX_BYTES)
        candidate = f"{base}-{suffix}" if base else suffix
    return candidate
