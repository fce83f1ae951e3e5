# viewrender/cli/console_output.py
"""
Handles writing rendered output and printing errors to the console (stderr).
"""
from pathlib import Path
from typing import Optional

import click
import structlog
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from viewrender.exceptions import TemplateError, ViewRenderError

log = structlog.get_logger(__name__)

CONTEXT_LINES = 3

_err_console: Optional[Console] = None


def err_console() -> Console:
    global _err_console
    if _err_console is None:
        _err_console = Console(stderr=True, highlight=False)
    return _err_console


def write_output(output: bytes, output_file: Optional[Path] = None) -> None:
    if output_file is None:
        stdout = click.get_binary_stream("stdout")
        stdout.write(output)
        stdout.flush()
        return
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_bytes(output)
    log.info("output_written_to_file", path=str(output_file), size=len(output))
    click.echo(f"Info: Output written to: {output_file}", err=True)


def print_error(error: ViewRenderError) -> None:
    """Prints ``error`` in red; template errors also show the offending source lines."""
    console = err_console()
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}", soft_wrap=True)
    if not isinstance(error, TemplateError):
        return
    if error.target:
        console.print(f"  reference: [yellow]{escape(error.target)}[/yellow]")
    if error.root and error.line > 0:
        first = max(1, error.line - CONTEXT_LINES)
        console.print(
            Syntax(
                error.root,
                "jinja",
                line_numbers=True,
                line_range=(first, error.line + CONTEXT_LINES),
                highlight_lines={error.line},
                word_wrap=True,
            )
        )
