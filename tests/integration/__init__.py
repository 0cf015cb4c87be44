"""Integration tests for feature sync.

These tests run the orchestrator and CLI against real temporary directories.
Tests marked ``requires_git`` call the git executable and are skipped when it
is not installed:
    pytest tests/integration -m requires_git
"""
