"""Colony CLI entrypoint."""

from __future__ import annotations

import click

from colony import __version__


@click.group()
@click.version_option(version=__version__, prog_name="colony")
def main() -> None:
    """Colony — agent scheduling, inference balancing, and shared memory."""


# Register subcommands
from colony.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
