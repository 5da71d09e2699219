"""Matching issue labels against the help-wanted vocabulary."""

from __future__ import annotations

import fnmatch
from typing import Iterable

from .config import DEFAULT_HELP_WANTED_LABELS


def canonicalize_label(label: str) -> str:
    """Convert a label to its canonical form for comparison purposes.

    Punctuation is stripped, whitespace collapsed, and freestanding capital
    letters (often used as prefixes to keep labels sorted, as in
    "E-easy" or "A - help wanted") dropped before lowercasing.
    """
    words = []
    for raw in label.replace("-", " ").replace("_", " ").replace(":", " ").split():
        word = "".join(c for c in raw if c.isalnum())
        if not word:
            continue
        if len(word) == 1 and word.isupper():
            continue
        words.append(word.lower())
    return " ".join(words)


class LabelMatcher:
    """A set of accepted label patterns; any match qualifies an issue."""

    def __init__(self, patterns: Iterable[str] = DEFAULT_HELP_WANTED_LABELS) -> None:
        canonical = []
        for pattern in patterns:
            if "*" in pattern:
                # Globs keep their wildcards; only the text around them is normalized.
                pieces = [canonicalize_label(p) for p in pattern.split("*")]
                canonical.append("*".join(pieces).lower())
            else:
                canonical.append(canonicalize_label(pattern))
        self.patterns: tuple[str, ...] = tuple(dict.fromkeys(p for p in canonical if p))
        if not self.patterns:
            raise ValueError("At least one help-wanted label pattern is required.")

    def matches_label(self, label: str) -> bool:
        text = canonicalize_label(label)
        if not text:
            return False
        return any(
            text == pattern or fnmatch.fnmatchcase(text, pattern)
            for pattern in self.patterns
        )

    def matches(self, labels: Iterable[str]) -> bool:
        return any(self.matches_label(label) for label in labels)

    def __repr__(self) -> str:
        return f"LabelMatcher({list(self.patterns)!r})"
