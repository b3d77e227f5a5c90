"""
Main CLI entry point for Creative Copycat
"""

import logging

import click

from .. import __version__
from .generate import generate_command
from .runs import runs_command


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """
    Creative Copycat - branded variations of competitor ad creatives

    Select an edit policy, mask the editable regions, draft an instruction
    with a vision model, render, and store the result at the requested
    aspect ratio.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


# Register commands
cli.add_command(generate_command)
cli.add_command(runs_command)


if __name__ == '__main__':
    cli()
