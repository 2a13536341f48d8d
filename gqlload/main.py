"""CLI entry point for gqlload."""

from __future__ import annotations

import click
from dotenv import load_dotenv

from gqlload.commands.load.cmd import load

load_dotenv()


@click.group()
@click.version_option(version="0.1.0", prog_name="gqlload")
def cli() -> None:
    """Load CSV and JSON data into GraphQL backends."""


cli.add_command(load)


if __name__ == "__main__":
    cli()
