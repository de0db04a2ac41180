"""CLI command that runs the full bootstrap and greets the account."""

from __future__ import annotations

import json

import click
from rich.console import Console

from solgreet.domain.models import DecodeError
from solgreet.services.bootstrap import BootstrapError

from .context import CLIContext

console = Console()


@click.command()
@click.option(
    "--times",
    type=click.IntRange(min=0),
    default=1,
    show_default=True,
    help="Number of greetings to send after bootstrapping.",
)
@click.option("--json-output", is_flag=True, help="Output the result as JSON.")
@click.pass_obj
def hello(cli_context: CLIContext, times: int, json_output: bool) -> None:
    """Deploy the program if needed, greet the account and report the count."""

    service = cli_context.service()
    if not json_output:
        console.print("Let's say hello to a Solana account...")
    try:
        counts = service.run(times=times)
    except (BootstrapError, DecodeError) as exc:
        raise click.ClickException(str(exc)) from exc

    session = service.session
    if json_output:
        payload = {
            "url": session.url,
            "programId": str(session.program_id),
            "greetedPubkey": str(session.greeted_pubkey),
            "counts": counts,
        }
        click.echo(json.dumps(payload, indent=2))
        return

    for count in counts:
        console.print(f"{session.greeted_pubkey} has been greeted {count} time(s)")
    console.print("Success")
