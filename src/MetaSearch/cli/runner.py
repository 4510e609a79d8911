"""Command runner for coordinating CLI execution.

Configures logging from the loaded config, runs one command and turns any
failure into a logged `click.Abort`.
"""

from __future__ import annotations

from typing import Protocol

import click

from MetaSearch.config import AppConfig
from MetaSearch.utils.log import configure_logging, log


class Command(Protocol):
    def execute(self) -> str:
        """Run the command and return the text to print."""
        ...


class CommandRunner:
    """Runs CLI commands with logging and error handling."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def run(self, action: str, command: Command) -> None:
        """Execute a command and echo its output.

        Args:
            action: The CLI command name (e.g., 'parse').
            command: Command to execute.

        Raises:
            click.Abort: When the command fails.
        """
        configure_logging(
            level=self.config.runtime.level,
            action=action,
            log_to_file=self.config.runtime.to_file,
            log_dir=self.config.runtime.dir,
        )
        try:
            output = command.execute()
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("%s failed: %s", action, e)
            raise click.Abort from e
        click.echo(output)
