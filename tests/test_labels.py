"""Tests for the help-wanted label vocabulary."""

import pytest

from contribute.config import DEFAULT_HELP_WANTED_LABELS
from contribute.labels import LabelMatcher, canonicalize_label


class TestCanonicalizeLabel:
    @pytest.mark.parametrize("label,expected", [
        ("help wanted", "help wanted"),
        ("Help Wanted", "help wanted"),
        ("help-wanted", "help wanted"),
        ("E-Help Wanted", "help wanted"),
        ("E-easy", "easy"),
        ("A - help wanted", "help wanted"),
        ("Status: Help Wanted", "status help wanted"),
        ("good first issue :+1:", "good first issue 1"),
        ("  beginner!  ", "beginner"),
        ("good_first_issue", "good first issue"),
        ("!!!", ""),
    ])
    def test_canonical_forms(self, label, expected):
        assert canonicalize_label(label) == expected

    def test_default_labels_are_canonical(self):
        for label in DEFAULT_HELP_WANTED_LABELS:
            if "*" not in label:
                assert canonicalize_label(label) == label


class TestLabelMatcher:
    def test_default_vocabulary(self):
        matcher = LabelMatcher()
        assert matcher.matches(["bug", "help wanted"])
        assert matcher.matches(["E-Help Wanted"])
        assert matcher.matches(["Good First Issue"])
        assert matcher.matches(["status: help wanted"])
        assert matcher.matches(["E-easy"])
        assert not matcher.matches(["bug", "enhancement"])
        assert not matcher.matches([])

    def test_any_match_is_enough(self):
        matcher = LabelMatcher()
        assert matcher.matches(["good first issue", "help wanted"])
        assert matcher.matches(["question", "beginner"])

    def test_custom_vocabulary_replaces_default(self):
        matcher = LabelMatcher(["contributions welcome"])
        assert matcher.matches(["Contributions-Welcome"])
        assert not matcher.matches(["help wanted"])

    def test_glob_patterns(self):
        matcher = LabelMatcher(["*first*"])
        assert matcher.matches(["good first issue"])
        assert matcher.matches(["First-Timers-Only"])
        assert not matcher.matches(["good second issue"])

    def test_empty_vocabulary_rejected(self):
        with pytest.raises(ValueError):
            LabelMatcher([])
        with pytest.raises(ValueError):
            LabelMatcher(["???"])

    def test_duplicates_collapse(self):
        matcher = LabelMatcher(["help wanted", "Help-Wanted"])
        assert matcher.patterns == ("help wanted",)
