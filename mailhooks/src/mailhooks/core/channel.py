"""User-facing error channel used when a hook command fails."""
from __future__ import annotations

import time
from typing import Protocol

import typer


class ErrorChannel(Protocol):
    """Where hook failures are shown to the user."""

    def error(self, text: str) -> None:
        """Display ``text`` as an error message."""

    def pause(self, seconds: float) -> None:
        """Hold the display so the message is read before the next redraw."""


class ConsoleChannel:
    """Print hook errors on ``stderr`` and sleep for the configured pause."""

    def error(self, text: str) -> None:
        typer.secho(text, err=True, fg=typer.colors.RED)

    def pause(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)
