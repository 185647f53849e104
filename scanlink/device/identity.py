"""Card serial canonicalisation and identity lookup."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from ..core.models import IdentityTable

_HEX_PAIR = re.compile(r"^[0-9A-F]{2}$")


def canonical_card_id(raw: Iterable[int]) -> str:
    """Format serial bytes as uppercase, zero-padded, space-separated hex.

    >>> canonical_card_id(bytes([0xA9, 0x6C, 0x6A, 0x05]))
    'A9 6C 6A 05'
    """

    return " ".join(f"{byte & 0xFF:02X}" for byte in raw)


def normalize_card_id(text: str) -> Optional[str]:
    """Canonicalise a typed card id such as ``a9 6c 6a 05`` or ``A96C6A05``.

    Returns None when the text is not a sequence of hex byte pairs.
    """

    tokens = text.upper().replace(":", " ").replace("-", " ").split()
    if len(tokens) == 1 and len(tokens[0]) > 2:
        packed = tokens[0]
        if len(packed) % 2:
            return None
        tokens = [packed[i : i + 2] for i in range(0, len(packed), 2)]
    if not tokens or not all(_HEX_PAIR.match(token) for token in tokens):
        return None
    return " ".join(tokens)


class IdentityResolver:
    """Resolves scanned serials against the static identity table."""

    def __init__(self, table: IdentityTable) -> None:
        self._table = table

    @property
    def table(self) -> IdentityTable:
        return self._table

    def resolve(self, raw: Iterable[int]) -> tuple[str, Optional[str]]:
        """Return ``(canonical id, person name or None)`` for a raw serial."""

        card_id = canonical_card_id(raw)
        return card_id, self._table.lookup(card_id)
