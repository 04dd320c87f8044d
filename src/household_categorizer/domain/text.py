import re
from collections.abc import Iterable

_PUNCTUATION = re.compile(r"[^A-Za-z0-9_\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase, keep ASCII letters and digits, and collapse any Unicode whitespace."""
    if not text:
        return ""
    cleaned = _PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


def contains_normalized(text: str, fragment: str) -> bool:
    """True when the normalized fragment occurs inside the normalized text.

    An empty fragment never matches, so a pattern made only of punctuation
    cannot claim every description.
    """
    needle = normalize_text(fragment)
    if not needle:
        return False
    return needle in normalize_text(text)


def matches_patterns(text: str, patterns: Iterable[str]) -> bool:
    normalized = normalize_text(text)
    for pattern in patterns:
        needle = normalize_text(pattern)
        if needle and needle in normalized:
            return True
    return False
