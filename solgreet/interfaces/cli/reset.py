"""Forget the remembered deployment."""

from __future__ import annotations

import click

from .context import CLIContext


@click.command()
@click.confirmation_option(prompt="Forget the stored deployment?")
@click.pass_obj
def reset(cli_context: CLIContext) -> None:
    """Delete the stored deployment so the next run deploys afresh."""

    service = cli_context.service()
    if service.reset():
        click.echo("Stored deployment removed.")
    else:
        click.echo("No stored deployment to remove.")
