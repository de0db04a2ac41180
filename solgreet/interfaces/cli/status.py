"""Show the remembered deployment, optionally checking it against the cluster."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from solgreet.infrastructure.persistence import StoreError
from solgreet.services.bootstrap import BootstrapError

from .context import CLIContext

console = Console()


@click.command()
@click.option(
    "--check",
    is_flag=True,
    help="Connect to the cluster and verify the program and account still exist.",
)
@click.pass_obj
def status(cli_context: CLIContext, check: bool) -> None:
    """Show the deployment stored in the config store."""

    service = cli_context.service()
    try:
        record = service.stored_record()
    except StoreError as exc:
        raise click.ClickException(f"Stored deployment is unreadable: {exc}") from exc

    if record is None:
        console.print(
            f"No deployment recorded in {service.store.path_for(service.config_key)}"
        )
        return

    table = Table(title="Stored deployment")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("url", record.url)
    table.add_row("programId", record.program_id)
    table.add_row("greetedPubkey", record.greeted_pubkey)

    if check:
        try:
            service.establish_connection()
            lookup = service.lookup_deployment()
        except BootstrapError as exc:
            raise click.ClickException(str(exc)) from exc
        table.add_row("status", lookup.status.value)
        if lookup.reason:
            table.add_row("reason", lookup.reason)

    console.print(table)
