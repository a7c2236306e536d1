"""Tracking token generation and scanning.

Token format is an external contract and must stay bit-exact:
    {prefix}{TAG}_{randomId}_{KIND}
e.g. HASH_H1_aB3dE8xQ_HTML, HASH_IMG_xY12abCD_SRC
"""

from __future__ import annotations

import re
import secrets
import string
from functools import lru_cache

from core.markers.models import TokenKind

TOKEN_ID_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
_KINDS = "|".join(kind.value for kind in TokenKind)


class TokenFactory:
    """Create tokens that are unique within one embedding pass."""

    def __init__(self, prefix: str, id_length: int) -> None:
        if id_length < 1:
            raise ValueError(f"Token id length must be positive: {id_length}")
        self._prefix = prefix
        self._id_length = id_length
        self._issued: set[str] = set()

    def create(self, tag: str, kind: TokenKind) -> str:
        while True:
            token = f"{self._prefix}{tag.upper()}_{_random_id(self._id_length)}_{kind.value}"
            if token not in self._issued:
                self._issued.add(token)
                return token

    @property
    def issued_count(self) -> int:
        return len(self._issued)


@lru_cache(maxsize=16)
def token_pattern(prefix: str) -> re.Pattern[str]:
    """Compile the scanner for tokens carrying the given prefix."""

    return re.compile(
        rf"(?<![A-Za-z0-9_]){re.escape(prefix)}"
        rf"[A-Z][A-Z0-9-]*_[A-Za-z0-9]+_(?:{_KINDS})"
        r"(?![A-Za-z0-9_])"
    )


def find_tokens(text: str, prefix: str) -> list[str]:
    return token_pattern(prefix).findall(text)


def _random_id(length: int) -> str:
    return "".join(secrets.choice(TOKEN_ID_ALPHABET) for _ in range(length))
