# layer_indexer/cli/commands/show.py

import click
import msgspec

from ...types import (
    EventParam,
    EventParams,
    StateChange,
    Token,
    TokenController,
    TokenMaster,
)
from ...types.ids import normalize_hash


def _echo_entity(entity) -> None:
    click.echo(msgspec.json.format(msgspec.json.encode(entity), indent=2).decode())


@click.group()
def show():
    """Inspect indexed entities"""
    pass


@show.command('token')
@click.argument('token_id', type=int)
@click.pass_context
def show_token(ctx, token_id):
    """Show a token and its master or controller record"""
    store = ctx.obj['cli_context'].store

    token = store.load(Token, str(token_id))
    if token is None:
        raise click.ClickException(f"Token {token_id} is not indexed")
    _echo_entity(token)

    if token.is_master:
        detail = store.load(TokenMaster, token.token_master)
    else:
        detail = store.load(TokenController, token.token_controller)
    if detail is not None:
        _echo_entity(detail)


@show.command('tx')
@click.argument('tx_hash')
@click.pass_context
def show_tx(ctx, tx_hash):
    """Show the audit record of a transaction"""
    store = ctx.obj['cli_context'].store

    state_change = store.load(StateChange, normalize_hash(tx_hash))
    if state_change is None:
        raise click.ClickException(f"No state change recorded for {tx_hash}")

    click.echo(f"Block {state_change.block_number} at {state_change.timestamp} "
               f"(contract v{state_change.contract_version})")
    click.echo(f"Users:  {', '.join(state_change.user_changes) or '-'}")
    click.echo(f"Tokens: {', '.join(state_change.token_changes) or '-'}")

    for group_id in state_change.tx_event_param_list:
        group = store.load(EventParams, group_id)
        if group is None:
            continue
        click.echo(f"[{group.index}] {group.event_name}")
        for param_id in group.params:
            param = store.load(EventParam, param_id)
            if param is not None:
                click.echo(f"    {param.param_name} ({param.param_type}) = {param.param}")
