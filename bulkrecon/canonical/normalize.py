"""Name normalization for training type matching.

Two levels are exposed:
- fold_name: case, diacritics and whitespace only (exact catalogue lookups)
- normalize_name: fold_name plus year and stopword removal (similarity scoring)

Normalization rules for normalize_name, in order:
1. Lowercase
2. Unicode NFD decomposition, combining marks dropped
3. Isolated 4-digit year tokens removed ("BOZP 2023" -> "bozp")
4. Stopwords removed as whole words (Czech and English qualifiers such as
   "skoleni", "zakladni", "training", "refresher")
5. Whitespace collapsed and trimmed
"""

from __future__ import annotations

import re
import unicodedata

# Matched after diacritics removal, so only the folded spelling is listed
STOPWORDS: frozenset[str] = frozenset(
    {
        # Czech
        "skoleni",
        "skoleneho",
        "zakladni",
        "pokrocile",
        "pokrocily",
        "pokrocilych",
        "opakovane",
        "opakovaci",
        "periodicke",
        "kurz",
        # English
        "training",
        "basic",
        "advanced",
        "refresher",
        "course",
    }
)

_YEAR_PATTERN = re.compile(r"\b\d{4}\b")
_STOPWORD_PATTERN = re.compile(
    r"\b(?:" + "|".join(sorted(map(re.escape, STOPWORDS))) + r")\b",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"\s+")


def strip_diacritics(text: str) -> str:
    """Remove combining marks after canonical decomposition."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if unicodedata.category(c) != "Mn")


def fold_name(name: str | None) -> str:
    """Case-, accent- and spacing-insensitive form of a display name."""
    if not name:
        return ""
    text = strip_diacritics(name.lower())
    return _WHITESPACE.sub(" ", text).strip()


def normalize_name(name: str | None) -> str:
    """Canonical comparison form of a training type name.

    Deterministic and idempotent; empty input yields an empty string.

    Examples:
        >>> normalize_name("BOZP - Základní školení 2023")
        'bozp -'
        >>> normalize_name("První pomoc")
        'prvni pomoc'
    """
    if not name:
        return ""

    text = strip_diacritics(name.lower())
    text = _YEAR_PATTERN.sub(" ", text)
    text = _STOPWORD_PATTERN.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()
