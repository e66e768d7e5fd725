"""
Tests for the embedded documentation.
"""

import pytest
from rich.text import Text

from hyprsetup.config import Config
from hyprsetup.docs import DOCS, INTRO, describe, render_documentation
from hyprsetup.tasks import TASKS, task_names


def plain(markup: str) -> str:
    return Text.from_markup(markup).plain


class TestRegistry:
    def test_every_task_is_documented(self):
        for task in TASKS:
            assert plain(task.docs).strip(), task.name

    def test_no_orphan_docs(self):
        assert list(DOCS) == task_names()

    def test_unknown_task(self):
        with pytest.raises(KeyError):
            describe("setup-kde")

    @pytest.mark.parametrize("name", list(DOCS))
    def test_markup_renders(self, name):
        # Escaped brackets such as \[cachyos] must survive rendering.
        Text.from_markup(describe(name))


class TestRenderDocumentation:
    def test_intro_first_then_canonical_order(self):
        text = plain(render_documentation())
        assert text.startswith(plain(INTRO))
        positions = [text.index(plain(describe(name)).splitlines()[0]) for name in task_names()]
        assert positions == sorted(positions)

    def test_subset(self):
        text = plain(render_documentation(["setup-editors"]))
        assert "Setting Up Text Editors" in text
        assert "Performing System Cleanup" not in text

    def test_cachyos_section_mentions_repo(self):
        assert "[cachyos]" in plain(describe("setup-extra-repos"))

    def test_hardening_section_uses_configured_port(self):
        text = plain(describe("harden-system"))
        assert f"{Config().SSH_PORT}/tcp" in text
        assert f"{Config().SSH_PORT} (the configured SSH port)" in text
