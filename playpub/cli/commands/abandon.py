from __future__ import annotations

from pathlib import Path

import typer

from playpub.cli.commands._helpers import (
    CONFIG_HELP,
    PACKAGE_HELP,
    SERVICE_ACCOUNT_HELP,
    exit_on_error,
)
from playpub.cli.context import build_context
from playpub.core.config import ConfigOverrides
from playpub.publish.backend import connect_google_play
from playpub.publish.publisher import abandon_edit


def abandon(
    edit_id: str = typer.Argument(..., help="Edit id printed by a failed publish"),
    package: str | None = typer.Option(None, "--package", help=PACKAGE_HELP),
    service_account: Path | None = typer.Option(
        None, "--service-account", help=SERVICE_ACCOUNT_HELP
    ),
    config: Path | None = typer.Option(None, "--config", help=CONFIG_HELP),
) -> None:
    """Delete an edit left open by a failed publish."""
    ctx = build_context(
        overrides=ConfigOverrides(package_name=package, service_account=service_account),
        config_path=config,
    )
    result = abandon_edit(
        config=ctx.config,
        edit_id=edit_id,
        console=ctx.console,
        connect=connect_google_play,
    )
    exit_on_error(result, ctx)
