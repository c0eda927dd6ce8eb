# layer_indexer/cli/__main__.py

"""
Layer indexer CLI

Usage: python -m layer_indexer.cli [command] [options]
"""

import atexit
from pathlib import Path

import click

from layer_indexer.cli.context import CLIContext
from layer_indexer.cli.commands.db import init_db
from layer_indexer.cli.commands.index import index
from layer_indexer.cli.commands.show import show
from layer_indexer.core.logging import IndexerLogger
from layer_indexer.types import DatabaseConfig

cli_context = CLIContext()


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--db-url', help='Database URL (overrides INDEXER_DB_URL)')
@click.pass_context
def cli(ctx, verbose, db_url):
    """Layer indexer - control token event indexing"""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['cli_context'] = cli_context

    if verbose:
        # First configure wins, so environment logging settings are ignored
        IndexerLogger.configure(
            log_dir=Path.cwd() / "logs",
            log_level="DEBUG",
            console_enabled=True,
            file_enabled=False,
            structured_format=False
        )
    if db_url:
        cli_context.overrides['database'] = DatabaseConfig(url=db_url)


cli.add_command(index)
cli.add_command(show)
cli.add_command(init_db)


def cleanup():
    """Shut down database connections"""
    cli_context.shutdown()


atexit.register(cleanup)


if __name__ == '__main__':
    cli()
