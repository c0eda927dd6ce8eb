# layer_indexer/cli/commands/db.py

import click


@click.command('init-db')
@click.pass_context
def init_db(ctx):
    """Create the entity tables"""
    db_manager = ctx.obj['cli_context'].db_manager
    db_manager.create_tables()
    if not db_manager.health_check():
        raise click.ClickException("Database health check failed")
    click.echo("✅ Database initialized")
