"""Cargo-style status lines for terminal output.

Finding blocks go to stdout. Status lines (``Scanning``, ``warning:``,
``error:``) go to stderr, like cargo's own status messages.

Styling is a hint only: click strips ANSI codes when the stream is not a
terminal, unless color is forced on.
"""

from typing import TextIO

import asyncclick as click

RED = "red"
YELLOW = "yellow"
GREEN = "green"


class Terminal:
    """Writes styled lines to a stream (stdout when none is given).

    Args:
        file: Stream for finding blocks (stdout when None)
        color: Force ANSI colors on/off (None detects from the stream)
        status_file: Stream for status lines; defaults to ``file`` when one
            is given, otherwise stderr
    """

    def __init__(
        self,
        file: TextIO | None = None,
        color: bool | None = None,
        status_file: TextIO | None = None,
    ):
        self.file = file
        self.color = color
        self.status_file = status_file if status_file is not None else file

    def echo(self, text: str = "") -> None:
        click.echo(text, file=self.file, color=self.color)

    def flush(self) -> None:
        stream = self.file or click.get_text_stream("stdout")
        stream.flush()

    def _status(self, text: str) -> None:
        click.echo(text, file=self.status_file, err=True, color=self.color)

    def status_ok(self, header: str, message: str) -> None:
        """Right-aligned green header, e.g. ``    Scanning Cargo.lock ...``."""
        self._status(f"{click.style(f'{header:>12}', fg=GREEN, bold=True)} {message}")

    def status_warn(self, message: str) -> None:
        self._status(f"{click.style('warning:', fg=YELLOW, bold=True)} {message}")

    def status_err(self, message: str) -> None:
        self._status(f"{click.style('error:', fg=RED, bold=True)} {message}")

    def attr(self, fg: str, label: str, content: str) -> None:
        """One ``Label:    value`` line of a finding block."""
        self.echo(f"{click.style(label, fg=fg, bold=True)}{content}")
