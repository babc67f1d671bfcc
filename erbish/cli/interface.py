# erbish/cli/interface.py
import sys
from pathlib import Path
from typing import Any, Optional, Tuple

import click
from click_option_group import optgroup
import structlog
import logging as stdlib_logging

from erbish import __version__ as app_version
from erbish.config.loader import build_render_config, load_config_file_data
from erbish.config.settings import DEFAULT_LOG_FORMAT, DEFAULT_LOG_LEVEL, RenderConfig
from erbish.logging_setup import LOG_FORMATS, configure_logging
from erbish.core.output import write_to_stdout, write_to_file, copy_to_clipboard
from erbish.core.templating import (
    DEFAULT_LAYOUT, TemplateRenderer, build_template_context, load_context_file,
)
from erbish.exceptions import ErbishError
from erbish.util import parse_user_vars
from .console_output import print_check_results, print_error

log = structlog.get_logger(__name__)

def _load_effective_config(views_dir: Optional[Path], template_extension: Optional[str]) -> RenderConfig:
    file_data = load_config_file_data(Path.cwd())
    overrides = {
        "views_dir": views_dir,
        "template_extension": template_extension,
    }
    config = build_render_config(file_data, overrides)
    # cli flags win; the project config may still change what the group configured
    obj = click.get_current_context().obj or {}
    applied = (obj.get("log_level_str", DEFAULT_LOG_LEVEL), obj.get("log_format") or DEFAULT_LOG_FORMAT)
    wanted = (
        applied[0] if obj.get("verbosity_level") else config.log_level,
        obj.get("log_format") or config.log_format,
    )
    if wanted != applied:
        configure_logging(log_level_str=wanted[0], log_format=wanted[1])
    return config

def _handle_cli_error(e: Exception):
    log.error(
        "cli_execution_error",
        error_type=type(e).__name__,
        message=str(e),
        is_debug=(stdlib_logging.getLogger("erbish").getEffectiveLevel() <= stdlib_logging.DEBUG),
    )
    print_error(str(e))
    sys.exit(1)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "-v",
    "--verbose",
    "verbosity_level",
    count=True,
    help="Increase log verbosity (-v info, -vv debug).",
)
@click.option(
    "--log-format",
    "log_format",
    type=click.Choice(LOG_FORMATS),
    default=None,
    help="Log renderer on stderr. Default: console or the configured value.",
)
@click.version_option(
    version=app_version, package_name="erbish", prog_name="erbish"
)
@click.pass_context
def main_cli_group(ctx: click.Context, verbosity_level: int, log_format: Optional[str]):
    """erbish: render ERB-style view templates with layouts."""
    log_level_str = DEFAULT_LOG_LEVEL
    if verbosity_level == 1:
        log_level_str = "info"
    elif verbosity_level >= 2:
        log_level_str = "debug"
    configure_logging(log_level_str=log_level_str, log_format=log_format or DEFAULT_LOG_FORMAT)
    ctx.obj = {"verbosity_level": verbosity_level, "log_level_str": log_level_str, "log_format": log_format}
    log.debug("cli_invocation", invoked_subcommand=ctx.invoked_subcommand)


@main_cli_group.command("render")
@click.argument("template_id")
@optgroup.group("Template Source Options", help="Where templates are looked up.")
@optgroup.option("--views", "views_dir", type=click.Path(file_okay=False, path_type=Path), default=None,
                 help="Views directory. Default: 'views' or the configured value.")
@optgroup.option("--ext", "template_extension", default=None, help="Template file extension. Default: .erb")
@optgroup.group("Layout Options", help="How the output is wrapped.")
@optgroup.option("--layout", "layout_name", default=None, help="Render inside this layout (must exist).")
@optgroup.option("--no-layout", "no_layout", is_flag=True, default=False, help="Do not use any layout.")
@optgroup.group("Context Options", help="Values visible to the template.")
@optgroup.option("--var", "cli_vars", multiple=True, help="Template variable as key=value. Repeatable.")
@optgroup.option("--context-file", "context_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                 default=None, help="JSON or TOML file with template variables.")
@optgroup.group("Output Options", help="Where the rendered text goes.")
@optgroup.option("-o", "--output-file", "output_file", type=click.Path(dir_okay=False, path_type=Path),
                 default=None, help="Write output to this file instead of stdout.")
@optgroup.option("--clipboard", is_flag=True, default=False, help="Also copy output to the clipboard.")
def render_command(
    template_id: str,
    views_dir: Optional[Path],
    template_extension: Optional[str],
    layout_name: Optional[str],
    no_layout: bool,
    cli_vars: Tuple[str, ...],
    context_file: Optional[Path],
    output_file: Optional[Path],
    clipboard: bool,
):
    """Render TEMPLATE_ID from the views directory."""
    if layout_name and no_layout:
        raise click.UsageError("--layout and --no-layout cannot be used together.")
    try:
        config = _load_effective_config(views_dir, template_extension)
        renderer = TemplateRenderer.from_config(config)
        context_file_data = load_context_file(context_file) if context_file else None
        context = build_template_context(config, context_file_data, parse_user_vars(cli_vars))

        layout: Any = DEFAULT_LAYOUT
        if no_layout:
            layout = None
        elif layout_name:
            layout = layout_name

        rendered = renderer.render(template_id, context, layout=layout)
        log.info("render_complete", template=template_id, chars=len(rendered))

        if output_file:
            write_to_file(output_file, rendered, encoding=config.encoding)
            click.secho(f"Wrote {output_file}", fg="green", err=True)
        else:
            write_to_stdout(rendered)
        if clipboard and not copy_to_clipboard(rendered):
            click.secho("warning: could not copy to clipboard.", fg="yellow", err=True)
    except ErbishError as e:
        _handle_cli_error(e)


@main_cli_group.command("check")
@click.option("--views", "views_dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Views directory. Default: 'views' or the configured value.")
@click.option("--ext", "template_extension", default=None, help="Template file extension. Default: .erb")
def check_command(views_dir: Optional[Path], template_extension: Optional[str]):
    """Compile every template and report syntax errors."""
    try:
        config = _load_effective_config(views_dir, template_extension)
        renderer = TemplateRenderer.from_config(config)
        failures = print_check_results(renderer.check_all())
    except ErbishError as e:
        _handle_cli_error(e)
    else:
        if failures:
            sys.exit(1)
