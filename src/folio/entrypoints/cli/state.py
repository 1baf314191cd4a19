"""Options shared by every ``folio`` subcommand."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click

from folio.bootstrap.host import Host, create_host
from folio.errors import StartupError


@dataclass(frozen=True)
class CliState:
    """Where to find configuration and which environment to run as."""

    content_root: Path
    environment_name: str

    def host(self) -> Host:
        """Compose a host without touching the database.

        Raises:
            click.ClickException: If configuration or composition fails.
        """
        try:
            return create_host(self.content_root, self.environment_name)
        except StartupError as e:
            raise click.ClickException(str(e)) from e


pass_state = click.make_pass_decorator(CliState)
