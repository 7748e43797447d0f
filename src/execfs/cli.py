"""Command line entry point: ``execfs CONFIG MOUNTPOINT``."""

import logging
import os

import click

from . import __version__
from .config import load_config
from .exceptions import ConfigError

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


def setup_logging(debug=False, log_file=None):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        filename=log_file,
    )


@click.command()
@click.argument("config", type=click.Path(exists=True, dir_okay=False))
@click.argument("mountpoint", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--foreground/--background",
    default=True,
    help="Stay in the foreground instead of daemonizing",
)
@click.option("--allow-other", is_flag=True, help="Allow access by other users")
@click.option("--debug", is_flag=True, help="Log every request")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write the log here instead of stderr",
)
@click.version_option(version=__version__, prog_name="execfs")
def main(config, mountpoint, foreground, allow_other, debug, log_file):
    """Mount CONFIG at MOUNTPOINT, backing each file with a shell command."""
    setup_logging(debug=debug, log_file=log_file)

    try:
        mount_config = load_config(config)
    except ConfigError as e:
        raise click.ClickException(f"{config}: {e}")

    if not mount_config.entries:
        click.echo(f"Warning: {config} defines no entries", err=True)

    # Imported here so a missing libfuse only affects mounting.
    from .mount import mount

    mount(
        mount_config,
        os.path.abspath(mountpoint),
        foreground=foreground,
        allow_other=allow_other,
        debug=debug,
    )

