"""nudge CLI entry point."""

import sys
from pathlib import Path

import click

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.commands import app_open, complete, daemon, evaluate, learn, reset, status
from cli.config import load_config
from cli.logging_config import setup_logging
from cli.utils import console


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Routine nudges - decides when to remind you about your skincare routine."""
    try:
        config = load_config()
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)
    log_cfg = config.logging
    setup_logging(
        json_mode=log_cfg.json_mode,
        level="DEBUG" if verbose else log_cfg.level,
        log_file=config.paths.log_file,
        file_level=log_cfg.file_level,
    )


cli.add_command(evaluate)
cli.add_command(status)
cli.add_command(app_open)
cli.add_command(complete)
cli.add_command(learn)
cli.add_command(reset)
cli.add_command(daemon)


if __name__ == "__main__":
    cli()
