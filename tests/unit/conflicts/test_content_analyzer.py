"""Unit tests for conflicts.content_analyzer module."""

import pytest

from src.conflicts.content_analyzer import (
    classify_content,
    has_conflict_markers,
    strip_comments,
    strip_whitespace,
)
from src.conflicts.models import ConflictType


class TestClassifyContent:
    """Test cases for classify_content."""

    def test_whitespace_only_difference(self):
        """Indentation and trailing space changes are whitespace-only."""
        remote = "Feature: A\n  Scenario: S\n    Given x\n"
        local = "Feature: A\nScenario: S\n\tGiven x   \n\n"

        assert classify_content(remote, local) == ConflictType.WHITESPACE_ONLY

    def test_comments_only_difference(self):
        """Added or removed comment lines are comments-only."""
        remote = "Feature: A\n  Scenario: S\n    Given x\n"
        local = "# owner: qa-team\nFeature: A\n  # TODO split\n  Scenario: S\n    Given x\n"

        assert classify_content(remote, local) == ConflictType.COMMENTS_ONLY

    def test_content_changes(self):
        remote = "Feature: A\n  Scenario: S\n    Given x\n"
        local = "Feature: A\n  Scenario: S\n    Given y\n"

        assert classify_content(remote, local) == ConflictType.CONTENT_CHANGES

    def test_whitespace_checked_before_comments(self):
        """Identical text is always whitespace-only."""
        assert classify_content("# c\nFeature: A", "# c\nFeature: A") == ConflictType.WHITESPACE_ONLY

    @pytest.mark.parametrize(
        "conflict_type, expected",
        [
            (ConflictType.WHITESPACE_ONLY, True),
            (ConflictType.COMMENTS_ONLY, True),
            (ConflictType.CONTENT_CHANGES, False),
        ],
    )
    def test_auto_resolvable(self, conflict_type, expected):
        assert conflict_type.auto_resolvable is expected


class TestHelpers:
    """Test marker detection and normalisation helpers."""

    @pytest.mark.parametrize("marker", ["<<<<<<< ours", "=======", ">>>>>>> theirs"])
    def test_detects_each_marker(self, marker):
        assert has_conflict_markers(f"Feature: A\n{marker}\n") is True

    def test_clean_text_has_no_markers(self):
        assert has_conflict_markers("Feature: A\n  Scenario: S\n") is False

    def test_strip_whitespace(self):
        assert strip_whitespace(" a b\n\tc ") == "abc"

    def test_strip_comments(self):
        assert strip_comments("# x\n  a  \n\n  # y\nb") == "a\nb"
