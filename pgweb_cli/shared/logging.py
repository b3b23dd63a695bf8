"""Rich-based logging helpers shared across the client."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme
from rich.traceback import install

install(show_locals=False)

_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "debug": "dim",
    }
)

# Result sets go to stdout so they can be piped; everything else goes to stderr.
# Highlighting stays off so cell values are never decorated with extra ANSI codes.
_stdout_console = Console(theme=_THEME, highlight=False)
_stderr_console = Console(stderr=True, theme=_THEME, highlight=False)

_LIBRARY_LOGGER = "pgweb_cli"


@dataclass(slots=True)
class Logger:
    """Lightweight logger facade backed by Rich consoles."""

    verbose: bool = False

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
        if self.verbose:
            _stderr_console.print(message, style="debug", markup=False)


def configure_logging(verbose: bool = False) -> None:
    """Route stdlib records from the library modules (gateway, store) to stderr."""
    library_logger = logging.getLogger(_LIBRARY_LOGGER)
    library_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(handler, RichHandler) for handler in library_logger.handlers):
        library_logger.addHandler(
            RichHandler(console=_stderr_console, show_path=False, markup=False)
        )


def get_logger(verbose: bool = False) -> Logger:
    """Return a configured Logger instance."""
    configure_logging(verbose)
    return Logger(verbose=verbose)
