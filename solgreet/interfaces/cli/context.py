"""Shared helpers for composing CLI command contexts.

This module centralises the CLI wiring: resolving settings from the settings
file, environment and command-line overrides, and building the bootstrap
service for a command.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import click

from solgreet.app.config import Settings, load_settings
from solgreet.services.bootstrap import BootstrapService

ServiceFactory = Callable[[Settings], BootstrapService]


def default_service_factory(settings: Settings) -> BootstrapService:
    """Build a service talking to the configured cluster."""
    return BootstrapService.from_settings(settings)


@dataclass(frozen=True)
class CLIContext:
    """Container for CLI settings and the service factory."""

    settings: Settings
    service_factory: ServiceFactory

    def service(self) -> BootstrapService:
        return self.service_factory(self.settings)


def build_cli_context(
    settings_path: str | Path | None = None,
    *,
    cluster: str | None = None,
    rpc_url: str | None = None,
    store_dir: str | Path | None = None,
    program_path: str | Path | None = None,
) -> CLIContext:
    """Resolve settings and wire the service factory for a CLI invocation."""

    try:
        settings = load_settings(settings_path)
        settings = settings.with_overrides(
            cluster=cluster,
            rpc_url=rpc_url,
            store_dir=store_dir,
            program_path=program_path,
        )
        # Validate the cluster name early so typos fail before any I/O.
        settings.url
    except (OSError, ValueError) as exc:
        raise click.UsageError(f"Invalid settings: {exc}") from exc

    # default_service_factory is resolved at call time
    return CLIContext(
        settings=settings,
        service_factory=lambda s: default_service_factory(s),
    )
