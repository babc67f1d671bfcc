# tests/conftest.py
"""Shared fixtures for erbish tests."""
from pathlib import Path

import pytest

from erbish.core.templating import DictSource, TemplateRenderer

DICE_VIEWS_DIR = Path(__file__).resolve().parent.parent / "examples" / "dice" / "views"


@pytest.fixture
def views_dir(tmp_path: Path) -> Path:
    """A views directory with a layout, two pages and a nested template."""
    views = tmp_path / "views"
    (views / "users").mkdir(parents=True)
    (views / "layout.erb").write_text("<html><title><%= title %></title><body><%= yield %></body></html>")
    (views / "index.erb").write_text("<p>Hello, <%= name %>!</p>")
    (views / "roll.erb").write_text(
        "<ul><% rolls.each do |roll| %><li><%= roll %></li><% end %></ul>"
    )
    (views / "users" / "show.erb").write_text("<h2><%= user.name %></h2>")
    return views


@pytest.fixture
def dict_renderer():
    """Builds a TemplateRenderer over an in-memory source."""
    def _make(templates, **kwargs):
        return TemplateRenderer(DictSource(templates), **kwargs)
    return _make


@pytest.fixture
def dice_views_dir() -> Path:
    """The bundled dice example views."""
    return DICE_VIEWS_DIR
