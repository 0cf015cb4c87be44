"""Test fixtures for feature sync tests.

This module provides:
- Sample Gherkin documents (valid, invalid and warning-prone)
- FakeMergeRunner, an in-process stand-in for the git merge/diff collaborator
"""

from .fake_merge_runner import FakeMergeRunner
from .sample_features import (
    FEATURE_FRENCH,
    FEATURE_LOGIN,
    FEATURE_MISSING_HEADER,
    FEATURE_NO_SCENARIOS,
    FEATURE_OUTLINE,
    FEATURE_OUTLINE_NO_ROWS,
    FEATURE_RULES,
    FEATURE_WITH_WARNINGS,
)

__all__ = [
    "FakeMergeRunner",
    "FEATURE_FRENCH",
    "FEATURE_LOGIN",
    "FEATURE_MISSING_HEADER",
    "FEATURE_NO_SCENARIOS",
    "FEATURE_OUTLINE",
    "FEATURE_OUTLINE_NO_ROWS",
    "FEATURE_RULES",
    "FEATURE_WITH_WARNINGS",
]
