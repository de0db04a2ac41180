"""Entry point for running the Solgreet CLI.

This module defines the top-level Click group that aggregates all subcommands
defined in the ``solgreet.interfaces.cli`` package. Executing
``python -m solgreet.interfaces.cli`` will invoke this group.
"""

import logging

import click

from solgreet.infrastructure.observability import configure_logging, configure_tracing

from .context import build_cli_context
from .hello import hello
from .reset import reset
from .status import status


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=str),
    default=None,
    help="JSON settings file (defaults to ./solgreet.json when present).",
)
@click.option(
    "--cluster",
    type=click.Choice(["localnet", "devnet", "testnet", "mainnet-beta"]),
    default=None,
    help="Named cluster to connect to.",
)
@click.option("--rpc-url", default=None, help="Explicit RPC endpoint; overrides --cluster.")
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False, path_type=str),
    default=None,
    help="Directory holding the remembered deployment.",
)
@click.option(
    "--program",
    "program_path",
    type=click.Path(dir_okay=False, path_type=str),
    default=None,
    help="Path to the compiled hello world program.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--trace", is_flag=True, help="Print OpenTelemetry spans to stdout.")
@click.pass_context
def cli(
    ctx: click.Context,
    settings_path: str | None,
    cluster: str | None,
    rpc_url: str | None,
    store_dir: str | None,
    program_path: str | None,
    verbose: bool,
    trace: bool,
) -> None:
    """Solgreet command-line interface."""
    configure_logging(logging.DEBUG if verbose else logging.INFO)
    if trace:
        configure_tracing(console=True)
    ctx.obj = build_cli_context(
        settings_path,
        cluster=cluster,
        rpc_url=rpc_url,
        store_dir=store_dir,
        program_path=program_path,
    )


cli.add_command(hello)
cli.add_command(status)
cli.add_command(reset)


if __name__ == "__main__":
    cli()
