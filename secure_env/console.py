"""
Terminal output helpers.
"""

from __future__ import annotations

import sys
from typing import Optional, TextIO


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    BLUE = "\033[0;34m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


class Console:
    """User-facing output, honoring quiet/verbose/color settings."""

    def __init__(
        self,
        color: bool = True,
        verbose: bool = False,
        quiet: bool = False,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ):
        self.color = color
        self.verbose = verbose
        self.quiet = quiet
        self._out = out
        self._err = err

    # Resolved lazily so pytest's capsys sees the output.
    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err or sys.stderr

    def colored(self, text: str, color: str) -> str:
        """Return colored text for terminal output."""
        if not self.color:
            return text
        return f"{color}{text}{Colors.RESET}"

    def log(self, msg: str = "") -> None:
        """Print message if not quiet."""
        if not self.quiet:
            print(msg, file=self.out)

    def log_verbose(self, msg: str) -> None:
        """Print message if verbose."""
        if self.verbose:
            print(self.colored(f"  → {msg}", Colors.BLUE), file=self.out)

    def error(self, msg: str) -> None:
        """Print error message to stderr."""
        print(self.colored(f"✗ Error: {msg}", Colors.RED), file=self.err)

    def failure(self, msg: str) -> None:
        """Print a per-file failure line; shown even when quiet."""
        print(self.colored(f"✗ {msg}", Colors.RED), file=self.out)

    def success(self, msg: str) -> None:
        self.log(self.colored(f"✓ {msg}", Colors.GREEN))

    def warning(self, msg: str) -> None:
        self.log(self.colored(f"⚠ Warning: {msg}", Colors.YELLOW))

    def hint(self, msg: str) -> None:
        self.log(self.colored(msg, Colors.YELLOW))

    def rule(self, color: str = Colors.GREEN) -> None:
        self.log(self.colored("═" * 40, color))
