# erbish/cli/console_output.py
"""
Handles printing template check results and errors to the console.
"""
from typing import List, Optional, Tuple

import click
import structlog
from rich.console import Console as RichConsole
from rich.table import Table

from erbish.exceptions import TemplateError

log = structlog.get_logger(__name__)

def print_check_results(results: List[Tuple[str, Optional[TemplateError]]], console: Optional[RichConsole] = None) -> int:
    """Prints one row per template; returns the number of templates that failed to compile."""
    console = console or RichConsole()
    if not results:
        click.secho("No templates found.", fg="yellow", err=True)
        return 0

    table = Table(title="Template check")
    table.add_column("template", no_wrap=True)
    table.add_column("status", no_wrap=True)
    table.add_column("detail")
    failures = 0
    for template_id, error in results:
        if error is None:
            table.add_row(template_id, "[green]ok[/green]", "")
        else:
            failures += 1
            table.add_row(template_id, "[red]error[/red]", str(error))
    console.print(table)
    log.debug("check_results_printed", total=len(results), failures=failures)
    return failures

def print_error(message: str):
    click.secho(f"Error: {message}", fg="red", err=True)
