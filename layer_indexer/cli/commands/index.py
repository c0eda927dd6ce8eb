# layer_indexer/cli/commands/index.py

import sys

import click

from ...pipeline import IndexingPipeline
from ...clients import RpcClient


@click.command('index')
@click.option('--from-block', type=int,
              help='First block to index (default: resume after the saved cursor, '
                   'or INDEXER_START_BLOCK on a fresh database)')
@click.option('--to-block', type=int, help='Last block to index (default: chain head)')
@click.option('--batch-size', type=int, help='Blocks per log query (default: INDEXER_BATCH_SIZE)')
@click.pass_context
def index(ctx, from_block, to_block, batch_size):
    """Index control token events in a block range

    Logs already applied according to the saved cursor are skipped, so an
    explicit --from-block never applies an event twice.

    Examples:
        # Continue where the last run stopped, up to the chain head
        index

        # Index a fixed range
        index --from-block 9000000 --to-block 9010000
    """
    cli_context = ctx.obj['cli_context']
    config = cli_context.container.config

    cli_context.db_manager.create_tables()
    pipeline = cli_context.get(IndexingPipeline)

    resuming = from_block is None
    if resuming:
        from_block = pipeline.resume_block(config.start_block)
    if to_block is None:
        to_block = cli_context.get(RpcClient).get_latest_block_number()
    if batch_size is None:
        batch_size = config.batch_size

    if from_block > to_block:
        if resuming:
            click.echo(f"✅ Up to date (next block {from_block}, chain head {to_block})")
            return
        raise click.BadParameter(f"--from-block {from_block} is after --to-block {to_block}")

    click.echo(f"Indexing blocks {from_block} to {to_block}")
    result = pipeline.run(from_block, to_block, batch_size=batch_size)

    click.echo(f"Logs fetched:      {result.logs_fetched}")
    click.echo(f"Events processed:  {result.events_processed}")
    click.echo(f"Events skipped:    {result.events_skipped}")
    click.echo(f"Already applied:   {result.events_already_applied}")
    click.echo(f"Last block done:   {result.last_processed_block}")

    if not result.success:
        for error in result.errors:
            context = error.context or {}
            click.echo(f"❌ [{error.stage}/{error.error_type}] {error.message} "
                       f"(tx {context.get('tx_hash')}, log {context.get('log_index')})", err=True)
        sys.exit(1)

    click.echo("✅ Indexing complete")
