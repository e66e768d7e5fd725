"""
Console output for the setup runner.

Every status line printed here is also written to the run log (once
`hyprsetup.log.setup_logger` has attached a file handler), so the log file
holds the same story the terminal showed.
"""

import logging
import shutil
from typing import Iterable, Optional, Tuple

import pyfiglet
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text
from rich.theme import Theme
from rich import box

from hyprsetup import APP_NAME, LOGGER_NAME, VERSION


# ----------------------------------------------------------------
# Tokyo Night Color Theme & Console Setup
# ----------------------------------------------------------------
class TokyoNightColors:
    """Tokyo Night palette for consistent styling."""

    BACKGROUND: str = "#1A1B26"
    FOREGROUND: str = "#C0CAF5"
    COMMENT: str = "#565F89"
    BLUE: str = "#7AA2F7"
    CYAN: str = "#7DCFFF"
    PURPLE: str = "#BB9AF7"
    ORANGE: str = "#E0AF68"
    GREEN: str = "#9ECE6A"
    RED: str = "#F7768E"


tokyonight_theme = Theme(
    {
        "step": f"bold {TokyoNightColors.PURPLE}",
        "info": TokyoNightColors.BLUE,
        "success": TokyoNightColors.GREEN,
        "warning": TokyoNightColors.ORANGE,
        "error": TokyoNightColors.RED,
        "debug": TokyoNightColors.CYAN,
        "prompt": f"bold {TokyoNightColors.ORANGE}",
        "path": TokyoNightColors.CYAN,
        "pkg": TokyoNightColors.GREEN,
        "label": f"bold {TokyoNightColors.ORANGE}",
        "text": TokyoNightColors.FOREGROUND,
        "desc": TokyoNightColors.BLUE,
        "title": f"bold italic {TokyoNightColors.PURPLE}",
        "prompt.invalid": TokyoNightColors.ORANGE,
    }
)

console = Console(theme=tokyonight_theme, highlight=False)
err_console = Console(theme=tokyonight_theme, highlight=False, stderr=True)

logger = logging.getLogger(LOGGER_NAME)


# ----------------------------------------------------------------
# UI Helper Functions
# ----------------------------------------------------------------
def create_header(title: str = APP_NAME) -> Panel:
    """
    Generate an ASCII art header with gradient styling using Pyfiglet.

    Args:
        title: The title text to display in the ASCII art

    Returns:
        A Rich Panel containing the styled ASCII art header
    """
    term_width = shutil.get_terminal_size().columns
    adjusted_width = min(term_width - 4, 80)

    fonts = ["slant", "small", "standard"]
    ascii_art = ""
    for font in fonts:
        try:
            fig = pyfiglet.Figlet(font=font, width=adjusted_width)
            ascii_art = fig.renderText(title)
            if ascii_art.strip():
                break
        except pyfiglet.FontNotFound:
            continue

    colors = [
        TokyoNightColors.PURPLE,
        TokyoNightColors.BLUE,
        TokyoNightColors.CYAN,
        TokyoNightColors.GREEN,
    ]
    styled_text = Text()
    ascii_lines = [line for line in ascii_art.splitlines() if line.strip()]
    for i, line in enumerate(ascii_lines):
        styled_text.append(line, style=Style(color=colors[i % len(colors)], bold=True))
        styled_text.append("\n")

    return Panel(
        styled_text,
        border_style=Style(color=TokyoNightColors.BLUE),
        padding=(1, 2),
        title=f"v{VERSION}",
        title_align="right",
        subtitle="Arch Linux",
        subtitle_align="center",
    )


def print_message(
    text: str,
    style: str = "info",
    prefix: str = "•",
    stderr: bool = False,
    level: int = logging.INFO,
) -> None:
    """Print a styled message with a prefix and mirror it to the run log."""
    target = err_console if stderr else console
    target.print(f"[{style}]{prefix} {escape(text)}[/{style}]")
    logger.log(level, text)


def print_step(title: str) -> None:
    """Display a step header."""
    console.print()
    console.print(f"[step]═══ ⚙ {escape(title)} ═══[/step]")
    logger.info(f"--- {title} ---")


def print_info(message: str) -> None:
    print_message(message, "info", "ℹ")


def print_success(message: str) -> None:
    print_message(message, "success", "✓")


def print_warning(message: str) -> None:
    print_message(message, "warning", "⚠", stderr=True, level=logging.WARNING)


def print_error(message: str) -> None:
    print_message(message, "error", "✗", stderr=True, level=logging.ERROR)


def print_docs(body: str, indent: int = 0) -> None:
    """
    Render a documentation block.

    Args:
        body: Rich-markup documentation text
        indent: Number of spaces to indent every line by
    """
    text = Text.from_markup(body)
    if indent:
        text = Text("\n").join(
            Text(" " * indent) + line for line in text.split("\n", allow_blank=True)
        )
    console.print(text)
    logger.info(text.plain)


def print_file(path: str, content: str) -> None:
    """Show the current contents of a configuration file."""
    console.print(
        Panel(
            Text(content),
            title=f"[path]{escape(path)}[/path]",
            border_style=Style(color=TokyoNightColors.COMMENT),
            box=box.ROUNDED,
        )
    )
    logger.debug(f"Contents of {path}:\n{content}")


def print_summary(rows: Iterable[Tuple[str, str, Optional[float]]]) -> None:
    """
    Display a summary table of every task that was considered during the run.

    Args:
        rows: (task title, status, elapsed seconds or None) tuples
    """
    table = Table(
        title="Setup Summary",
        title_style=f"bold {TokyoNightColors.PURPLE}",
        border_style=TokyoNightColors.BLUE,
        box=box.ROUNDED,
    )
    table.add_column("Task", style=f"bold {TokyoNightColors.FOREGROUND}")
    table.add_column("Status")
    table.add_column("Time", justify="right")

    status_styles = {
        "success": "success",
        "satisfied": "success",
        "skipped": "warning",
        "not applicable": "warning",
        "failed": "error",
    }
    for title, status, elapsed in rows:
        style = status_styles.get(status, "text")
        took = f"{elapsed:.1f}s" if elapsed is not None else "-"
        table.add_row(title, f"[{style}]{status.upper()}[/{style}]", took)
        logger.info(f"{title}: {status} ({took})")

    console.print()
    console.print(table)
