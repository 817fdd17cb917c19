"""
Single-line progress output for a build run.

The line is redrawn in place with rich's Live display; log records written to
the same console scroll above it.
"""

import math
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.text import Text

from staticforge.utils import console as default_console


def percent(done: int, total: int) -> int:
    """Whole percentage of done/total, rounding halves up. 100 when total is 0."""
    if total <= 0:
        return 100
    return math.floor(done * 100 / total + 0.5)


class ProgressReporter:
    """
    Overwrite-in-place status line.

    One reporter lives for one build. write_line() replaces the current line;
    finish() writes a final line and releases the terminal.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or default_console
        self.line = ""
        self.history: list[str] = []
        self._live: Optional[Live] = None

    @property
    def active(self) -> bool:
        return self._live is not None

    def write_line(self, text: str) -> None:
        self.line = text
        self.history.append(text)

        if self._live is None:
            self._live = Live(
                Text(text),
                console=self.console,
                auto_refresh=False,
                transient=False,
            )
            self._live.start()

        self._live.update(Text(text), refresh=True)

    def finish(self, text: Optional[str] = None) -> None:
        """Write an optional final line and stop redrawing."""
        if text is not None:
            self.write_line(text)
        if self._live is not None:
            self._live.stop()
            self._live = None
            # Live leaves the last line unterminated on non-terminals
            if not self.console.is_terminal:
                self.console.line()
