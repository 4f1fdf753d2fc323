"""Rich-based logging helpers shared across tabula tools."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.text import Text
from rich.theme import Theme
from rich.traceback import install

install(show_locals=False)

DEFAULT_LOGGER_NAME = "tabula"

_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "debug": "dim",
        "logger.name": "dim magenta",
    }
)

# stdout carries query payloads, stderr carries log chatter. Highlighting is off so
# that values such as column names are printed without injected ANSI sequences.
_stdout_console = Console(theme=_THEME, highlight=False)
_stderr_console = Console(stderr=True, theme=_THEME, highlight=False)


@dataclass(slots=True)
class Logger:
    """Logger facade backed by Rich consoles.

    ``name`` is the program name (``tabula-query`` for the CLI); verbose
    lines are prefixed with it.
    """

    verbose: bool = False
    name: str = DEFAULT_LOGGER_NAME

    @property
    def console(self) -> Console:
        return _stdout_console

    def info(self, message: str) -> None:
        _stderr_console.print(message, style="info", markup=False)

    def success(self, message: str) -> None:
        _stderr_console.print(message, style="success", markup=False)

    def warning(self, message: str) -> None:
        _stderr_console.print(message, style="warning", markup=False)

    def error(self, message: str) -> None:
        _stderr_console.print(message, style="error", markup=False)

    def debug(self, message: str) -> None:
        if not self.verbose:
            return
        _stderr_console.print(Text.assemble((f"{self.name}: ", "logger.name"), (message, "debug")))


def get_logger(verbose: bool = False, name: str | None = None) -> Logger:
    """Return a configured Logger instance."""
    return Logger(verbose=verbose, name=name or DEFAULT_LOGGER_NAME)
