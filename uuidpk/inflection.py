"""English pluralization for table names (``person`` -> ``people``, ``legacy_item`` -> ``legacy_items``)."""

from __future__ import annotations

import re

UNCOUNTABLE = frozenset({
    "equipment", "information", "rice", "money", "species", "series",
    "fish", "sheep", "jeans", "police", "news", "metadata",
})

IRREGULAR = {
    "person": "people",
    "man": "men",
    "woman": "women",
    "child": "children",
    "sex": "sexes",
    "move": "moves",
    "zombie": "zombies",
    "ox": "oxen",
    "mouse": "mice",
    "goose": "geese",
    "foot": "feet",
    "tooth": "teeth",
}

# First match wins.
PLURAL_RULES = [
    (r"(quiz)$", r"\1zes"),
    (r"(matr|vert|ind)(?:ix|ex)$", r"\1ices"),
    (r"(x|ch|ss|sh)$", r"\1es"),
    (r"([^aeiouy]|qu)y$", r"\1ies"),
    (r"(hive)$", r"\1s"),
    (r"(?:([^f])fe|([lr])f)$", r"\1\2ves"),
    (r"sis$", "ses"),
    (r"([ti])um$", r"\1a"),
    (r"(buffal|tomat)o$", r"\1oes"),
    (r"(bu)s$", r"\1ses"),
    (r"(alias|status)$", r"\1es"),
    (r"(octop|vir)us$", r"\1i"),
    (r"(ax|test)is$", r"\1es"),
    (r"s$", "s"),
]
_COMPILED = [(re.compile(p, re.IGNORECASE), r) for p, r in PLURAL_RULES]


def _pluralize_word(word: str) -> str:
    lower = word.lower()
    if not lower or lower in UNCOUNTABLE:
        return word
    if lower in IRREGULAR:
        plural = IRREGULAR[lower]
        return word[0] + plural[1:]
    if lower in IRREGULAR.values():
        return word
    for pattern, replacement in _COMPILED:
        if pattern.search(word):
            return pattern.sub(replacement, word, count=1)
    return word + "s"


def pluralize(name: str) -> str:
    """Pluralize the last ``_``-separated segment of ``name``."""
    head, sep, last = str(name).rpartition("_")
    return f"{head}{sep}{_pluralize_word(last)}"
