"""Command-line entry point."""

import logging
import subprocess
import sys
import time
from typing import Tuple

import click
from rich.markup import escape

from hyprsetup import APP_NAME, LOGGER_NAME, VERSION
from hyprsetup import tasks as registry
from hyprsetup.context import resolve_context
from hyprsetup.docs import describe, render_documentation
from hyprsetup.errors import SetupError, UsageError, UserAbort
from hyprsetup.log import close_logger, setup_logger
from hyprsetup.runner import DOCS, HELP, TASK_DOCS, Invocation, TaskRunner, parse_arguments
from hyprsetup.ui import (
    console,
    create_header,
    err_console,
    print_docs,
    print_error,
    print_info,
    print_warning,
)

logger = logging.getLogger(LOGGER_NAME)

PROG = "hyprsetup"


def render_usage(prog: str = PROG) -> str:
    lines = [
        f"[label]Usage: {prog} \\[OPTIONS...][/label]",
        "[text]Automates the setup of a complete Hyprland environment on Arch Linux.[/text]",
        "",
        "[text]If no options are provided, every setup task runs interactively.[/text]",
        "",
        "[title]Options:[/title]",
    ]
    for task in registry.TASKS:
        lines.append(f"  [pkg]{task.flag:<24}[/pkg] [text]{escape(task.summary)}[/text]")
    lines += [
        f"  [warning]{'--debug':<24}[/warning] [text]Trace every command on stderr.[/text]",
        f"  [info]{'--help':<24}[/info] [text]Display this help message and exit.[/text]",
        f"  [info]{'--docs':<24}[/info] [text]Display the full embedded documentation and exit.[/text]",
        "",
        f"[label]To view docs for a specific task, use: {prog} --<task-name> --docs[/label]",
        f"[text]  Example: {prog} --setup-nix --docs[/text]",
    ]
    return "\n".join(lines)


def print_usage(stderr: bool = False) -> None:
    (err_console if stderr else console).print(render_usage())


def run(invocation: Invocation) -> int:
    """
    Resolve the run context, set up logging and run the requested tasks.

    Returns:
        Process exit code
    """
    try:
        ctx = resolve_context(debug=invocation.debug)
    except SetupError as e:
        print_error(str(e))
        return 1

    start = time.monotonic()
    try:
        with ctx:
            console.print(create_header())
            ctx.log_file = setup_logger(ctx.logs_dir, debug=ctx.debug)
            logger.info(f"Starting {APP_NAME} v{VERSION} for user {ctx.target_user}")
            print_info(f"Log file: {ctx.log_file}")
            if ctx.debug:
                print_warning("Debug mode enabled. Every command is traced on stderr.")
            try:
                TaskRunner(ctx).run(invocation)
            except UserAbort as e:
                print_warning(str(e))
                return 1
            except (SetupError, subprocess.CalledProcessError, FileNotFoundError) as e:
                print_error(str(e))
                logger.debug("Traceback:", exc_info=True)
                return 1
            except Exception as e:
                print_error(f"Unexpected error: {e}")
                logger.debug("Traceback:", exc_info=True)
                return 1
            elapsed = time.monotonic() - start
            logger.info(f"{APP_NAME} finished in {elapsed:.1f}s.")
            return 0
    finally:
        close_logger()


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_extra_args": True,
        "help_option_names": [],
    }
)
@click.argument("tokens", nargs=-1, type=click.UNPROCESSED)
def main(tokens: Tuple[str, ...]) -> None:
    """Hyprland Arch Linux Setup"""
    try:
        invocation = parse_arguments(tokens)
    except UsageError as e:
        print_error(str(e))
        print_usage(stderr=True)
        sys.exit(1)

    if invocation.action == HELP:
        print_usage()
    elif invocation.action == DOCS:
        print_docs(render_documentation(registry.task_names()))
    elif invocation.action == TASK_DOCS:
        print_docs(describe(invocation.docs_task))
    else:
        sys.exit(run(invocation))


if __name__ == "__main__":
    main()
