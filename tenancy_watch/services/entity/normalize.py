"""Party-name normalisation.

``normalize_name`` is the identity key used while ingesting; ``merge_key``
is the looser key the offline merge pass groups parties by.
"""

import re

LEGAL_SUFFIXES = (
    "limited", "ltd", "plc", "inc", "dac", "clg", "uc", "teoranta",
    "company", "co", "corp", "corporation", "unltd",
)

BUSINESS_WORDS = (
    "properties", "property", "management", "investments",
    "residential", "fund", "reit",
)

_PUNCTUATION = re.compile(r"""[.,/#!$%^*;:{}=_`~'"]""")
_HYPHEN_SPACING = re.compile(r"\s*-\s*")
_WHITESPACE = re.compile(r"\s+")
_TRAILING_WORDS = [
    re.compile(rf"\b{re.escape(word)}\b\s*$", re.IGNORECASE)
    for word in LEGAL_SUFFIXES + BUSINESS_WORDS
]


def normalize_name(name: str | None) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    if not name:
        return ""
    return _WHITESPACE.sub(" ", name).strip().lower()


def merge_key(name: str | None) -> str:
    """Aggressive normalisation for duplicate detection.

    "IRES Fund Management Ltd." -> "ires"
    "Clúid Housing Association CLG" -> "clúid housing association"
    """
    if not name:
        return ""
    value = name.lower().strip()
    value = value.replace("(", " ").replace(")", " ")
    value = _PUNCTUATION.sub(" ", value)
    value = _HYPHEN_SPACING.sub("-", value)

    changed = True
    while changed:
        changed = False
        for pattern in _TRAILING_WORDS:
            stripped = pattern.sub("", value).strip()
            if stripped != value:
                value = stripped
                changed = True

    return _WHITESPACE.sub(" ", value).strip()
