# tests/test_cli.py
"""End-to-end tests for the erbish command line."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from erbish import __version__
from erbish.cli.interface import main_cli_group


def _write_views(base: Path, views_name: str = "views") -> Path:
    views = base / views_name
    views.mkdir()
    (views / "layout.erb").write_text("<main><h1><%= title %></h1><%= yield %></main>")
    (views / "print.erb").write_text("[<%= yield %>]")
    (views / "index.erb").write_text("<p>Hello, <%= name %>!</p>")
    (views / "roll.erb").write_text("<% rolls.each do |r| %><%= r %>;<% end %>total=<%= rolls.sum %>")
    return views


@pytest.fixture
def runner():
    return CliRunner()


class TestRenderCommand:
    """Tests for `erbish render`."""

    def test_render_with_default_layout(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(
                main_cli_group, ["render", "index", "--var", "name=Ada", "--var", "title=Home"]
            )
            assert result.exit_code == 0, result.output
            assert result.stdout == "<main><h1>Home</h1><p>Hello, Ada!</p></main>"

    def test_render_without_layout(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(main_cli_group, ["render", "index", "--no-layout", "--var", "name=Ada"])
            assert result.exit_code == 0, result.output
            assert result.stdout == "<p>Hello, Ada!</p>"

    def test_render_with_named_layout(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(main_cli_group, ["render", "index", "--layout", "print", "--var", "name=Ada"])
            assert result.exit_code == 0, result.output
            assert result.stdout == "[<p>Hello, Ada!</p>]"

    def test_missing_named_layout(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(main_cli_group, ["render", "index", "--layout", "fancy", "--var", "name=Ada"])
            assert result.exit_code == 1
            assert "Error:" in result.output
            assert "fancy" in result.output

    def test_layout_flags_conflict(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(main_cli_group, ["render", "index", "--layout", "print", "--no-layout"])
            assert result.exit_code == 2
            assert "cannot be used together" in result.output

    def test_missing_template(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(main_cli_group, ["render", "nope"])
            assert result.exit_code == 1
            assert "Template 'nope' not found" in result.output

    def test_undefined_variable(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(main_cli_group, ["render", "index", "--no-layout"])
            assert result.exit_code == 1
            assert "undefined local variable or method 'name'" in result.output

    def test_context_file(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            Path("ctx.json").write_text(json.dumps({"rolls": [3, 6, 1]}))
            result = runner.invoke(main_cli_group, ["render", "roll", "--no-layout", "--context-file", "ctx.json"])
            assert result.exit_code == 0, result.output
            assert result.stdout == "3;6;1;total=10"

    def test_cli_vars_override_context_file(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            Path("ctx.toml").write_text('name = "File"\n')
            result = runner.invoke(
                main_cli_group,
                ["render", "index", "--no-layout", "--context-file", "ctx.toml", "--var", "name=Cli"],
            )
            assert result.exit_code == 0, result.output
            assert result.stdout == "<p>Hello, Cli!</p>"

    def test_output_file(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(
                main_cli_group, ["render", "index", "--no-layout", "--var", "name=Ada", "-o", "out.html"]
            )
            assert result.exit_code == 0, result.output
            assert Path("out.html").read_text() == "<p>Hello, Ada!</p>"
            assert "Wrote out.html" in result.output

    def test_views_option(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd(), "templates")
            result = runner.invoke(
                main_cli_group, ["render", "index", "--views", "templates", "--no-layout", "--var", "name=Ada"]
            )
            assert result.exit_code == 0, result.output
            assert result.stdout == "<p>Hello, Ada!</p>"

    def test_project_config_file(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd(), "site")
            Path(".erbish.toml").write_text(
                'views = "site"\nlayout = "print"\n\n[vars]\nname = "Config"\n'
            )
            result = runner.invoke(main_cli_group, ["render", "index"])
            assert result.exit_code == 0, result.output
            assert result.stdout == "[<p>Hello, Config!</p>]"

    def test_broken_config_file(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            Path(".erbish.toml").write_text("views = [\n")
            result = runner.invoke(main_cli_group, ["render", "index"])
            assert result.exit_code == 1
            assert "Error:" in result.output

    def test_clipboard_failure_is_a_warning(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            with patch("erbish.cli.interface.copy_to_clipboard", return_value=False):
                result = runner.invoke(
                    main_cli_group, ["render", "index", "--no-layout", "--var", "name=Ada", "--clipboard"]
                )
            assert result.exit_code == 0, result.output
            assert "could not copy to clipboard" in result.output

    def test_clipboard_success(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            with patch("erbish.cli.interface.copy_to_clipboard", return_value=True) as copy_mock:
                result = runner.invoke(
                    main_cli_group, ["render", "index", "--no-layout", "--var", "name=Ada", "--clipboard"]
                )
            assert result.exit_code == 0, result.output
            copy_mock.assert_called_once_with("<p>Hello, Ada!</p>")


class TestCheckCommand:
    """Tests for `erbish check`."""

    def test_all_templates_ok(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(main_cli_group, ["check"])
            assert result.exit_code == 0, result.output
            for name in ("index", "layout", "print", "roll"):
                assert name in result.output

    def test_broken_template_fails(self, runner: CliRunner):
        with runner.isolated_filesystem():
            views = _write_views(Path.cwd())
            (views / "broken.erb").write_text("<% if ready %>never closed")
            result = runner.invoke(main_cli_group, ["check"])
            assert result.exit_code == 1
            assert "broken" in result.output
            assert "error" in result.output

    def test_no_templates(self, runner: CliRunner):
        with runner.isolated_filesystem():
            result = runner.invoke(main_cli_group, ["check"])
            assert result.exit_code == 0
            assert "No templates found." in result.output


class TestGroupOptions:
    """Tests for options on the top-level group."""

    def test_version(self, runner: CliRunner):
        result = runner.invoke(main_cli_group, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_verbose_logging_goes_to_stderr(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(main_cli_group, ["-v", "render", "index", "--no-layout", "--var", "name=Ada"])
            assert result.exit_code == 0, result.output
            assert "render_complete" in result.output

    def test_json_log_format(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            result = runner.invoke(
                main_cli_group,
                ["-v", "--log-format", "json", "render", "index", "--no-layout", "--var", "name=Ada"],
            )
            assert result.exit_code == 0, result.output
            assert '"event": "render_complete"' in result.output

    def test_log_format_from_config(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_views(Path.cwd())
            Path(".erbish.toml").write_text('log_level = "info"\nlog_format = "json"\n')
            result = runner.invoke(main_cli_group, ["render", "index", "--no-layout", "--var", "name=Ada"])
            assert result.exit_code == 0, result.output
            assert '"event": "render_complete"' in result.output
