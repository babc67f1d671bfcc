# tests/test_config.py
"""Tests for configuration loading, context building and small utilities."""

import json
from pathlib import Path

import pytest
import toml

from erbish.config import RenderConfig, build_render_config, load_config_file_data
from erbish.core.templating import build_template_context, load_context_file
from erbish.exceptions import ConfigError
from erbish.util import line_number_at, parse_user_vars, strip_utf8_bom


class TestRenderConfig:
    """Tests for RenderConfig defaults and normalization."""

    def test_defaults(self):
        config = RenderConfig()
        assert config.views_dir == Path("views")
        assert config.template_extension == ".erb"
        assert config.default_layout == "layout"
        assert config.cache_templates is True
        assert config.user_vars == {}

    def test_normalizes_string_values(self):
        config = RenderConfig(views_dir="templates", template_extension="html", default_layout="")
        assert config.views_dir == Path("templates")
        assert config.template_extension == ".html"
        assert config.default_layout is None


class TestConfigLoader:
    """Tests for finding and merging project config files."""

    def test_no_config_files(self, tmp_path: Path):
        assert load_config_file_data(tmp_path) == {}

    def test_reads_pyproject_tool_table(self, tmp_path: Path):
        (tmp_path / "pyproject.toml").write_text(
            toml.dumps({"project": {"name": "site"}, "tool": {"erbish": {"layout": "base"}}})
        )
        data = load_config_file_data(tmp_path)
        assert data["layout"] == "base"
        assert data["_config_dir"] == str(tmp_path)

    def test_pyproject_without_tool_table_is_skipped(self, tmp_path: Path):
        (tmp_path / "pyproject.toml").write_text(toml.dumps({"project": {"name": "site"}}))
        assert load_config_file_data(tmp_path) == {}

    def test_dedicated_file_wins_over_pyproject(self, tmp_path: Path):
        (tmp_path / "pyproject.toml").write_text(toml.dumps({"tool": {"erbish": {"layout": "base"}}}))
        (tmp_path / ".erbish.toml").write_text('layout = "main"\n')
        assert load_config_file_data(tmp_path)["layout"] == "main"

    def test_malformed_toml(self, tmp_path: Path):
        (tmp_path / ".erbish.toml").write_text("layout = \n")
        with pytest.raises(ConfigError):
            load_config_file_data(tmp_path)

    def test_build_from_file_data(self, tmp_path: Path):
        file_data = {
            "views": "site/views",
            "extension": ".html.erb",
            "layout": "main",
            "cache_templates": False,
            "vars": {"title": "Site"},
            "_config_dir": str(tmp_path),
        }
        config = build_render_config(file_data)
        assert config.views_dir == tmp_path / "site" / "views"
        assert config.template_extension == ".html.erb"
        assert config.default_layout == "main"
        assert config.cache_templates is False
        assert config.user_vars == {"title": "Site"}

    def test_absolute_views_dir_is_kept(self, tmp_path: Path):
        absolute = tmp_path / "elsewhere"
        config = build_render_config({"views": str(absolute), "_config_dir": "/somewhere"})
        assert config.views_dir == absolute

    def test_unknown_keys_are_ignored(self):
        config = build_render_config({"colour": "blue"})
        assert config == RenderConfig()

    @pytest.mark.parametrize(
        "key, value",
        [
            ("views", 3),
            ("cache_templates", "yes"),
            ("vars", ["a", "b"]),
            ("layout", False),
        ],
    )
    def test_wrong_types(self, key, value):
        with pytest.raises(ConfigError, match=key):
            build_render_config({key: value})

    def test_overrides_win_and_none_is_ignored(self):
        config = build_render_config(
            {"layout": "main", "extension": ".erb"},
            {"default_layout": "print", "template_extension": None},
        )
        assert config.default_layout == "print"
        assert config.template_extension == ".erb"

    def test_user_vars_are_merged(self):
        config = build_render_config({"vars": {"a": 1, "b": 2}}, {"user_vars": {"b": 3}})
        assert config.user_vars == {"a": 1, "b": 3}

    def test_unknown_override(self):
        with pytest.raises(ConfigError):
            build_render_config({}, {"theme": "dark"})


class TestContextBuilder:
    """Tests for context files and context precedence."""

    def test_json_context_file(self, tmp_path: Path):
        path = tmp_path / "ctx.json"
        path.write_text(json.dumps({"rolls": [1, 2], "title": "Dice"}))
        assert load_context_file(path) == {"rolls": [1, 2], "title": "Dice"}

    def test_toml_context_file(self, tmp_path: Path):
        path = tmp_path / "ctx.toml"
        path.write_text('title = "Dice"\nrolls = [3, 4]\n')
        assert load_context_file(path) == {"title": "Dice", "rolls": [3, 4]}

    def test_unsupported_suffix(self, tmp_path: Path):
        path = tmp_path / "ctx.yaml"
        path.write_text("title: Dice\n")
        with pytest.raises(ConfigError, match="Unsupported"):
            load_context_file(path)

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "ctx.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_context_file(path)

    def test_top_level_must_be_object(self, tmp_path: Path):
        path = tmp_path / "ctx.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ConfigError, match="object"):
            load_context_file(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            load_context_file(tmp_path / "absent.json")

    def test_precedence(self):
        config = RenderConfig(user_vars={"title": "config", "site": "dice"})
        context = build_template_context(config, {"title": "file", "rolls": [1]}, {"title": "cli"})
        assert context == {"title": "cli", "site": "dice", "rolls": [1]}

    def test_config_vars_are_not_mutated(self):
        config = RenderConfig(user_vars={"title": "config"})
        build_template_context(config, None, {"title": "cli"})
        assert config.user_vars == {"title": "config"}


class TestUtil:
    """Tests for small helper functions."""

    def test_parse_user_vars(self):
        assert parse_user_vars(["title=Dice", " count =3", "expr=a=b"]) == {
            "title": "Dice",
            "count": "3",
            "expr": "a=b",
        }

    def test_parse_user_vars_skips_malformed(self):
        assert parse_user_vars(["novalue", "ok=1"]) == {"ok": "1"}

    def test_strip_utf8_bom(self):
        assert strip_utf8_bom(b"\xef\xbb\xbfabc") == b"abc"
        assert strip_utf8_bom(b"abc") == b"abc"

    @pytest.mark.parametrize("offset, expected", [(0, 1), (3, 1), (4, 2), (9, 3)])
    def test_line_number_at(self, offset, expected):
        assert line_number_at("abc\ndef\nghi", offset) == expected


class TestLogFormatConfig:
    """Tests for the log_format setting."""

    def test_accepts_known_format(self):
        assert build_render_config({"log_format": "json"}).log_format == "json"

    def test_rejects_unknown_format(self):
        with pytest.raises(ConfigError, match="log_format"):
            build_render_config({"log_format": "xml"})
