from __future__ import annotations

import re
import unicodedata

_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Canonical form used for address matching.

    Lower-cases, strips diacritics, turns punctuation into spaces and
    collapses whitespace: ``"Rua das Flores, 123"`` -> ``"rua das flores 123"``.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _NON_WORD.sub(" ", stripped)
    return _WHITESPACE.sub(" ", stripped).strip()
