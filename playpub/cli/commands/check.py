from __future__ import annotations

from pathlib import Path

import typer

from playpub.cli.commands._helpers import (
    CONFIG_HELP,
    PACKAGE_HELP,
    PROJECT_DIR_HELP,
    SERVICE_ACCOUNT_HELP,
    TRACK_HELP,
    exit_on_error,
    print_settings,
)
from playpub.cli.context import build_context
from playpub.core.config import ConfigOverrides
from playpub.output.console import Style
from playpub.publish.notes import find_release_notes
from playpub.publish.validate import validate_request, validate_settings


def check(
    bundle: Path | None = typer.Argument(None, help="Optional .aab to check as well"),
    package: str | None = typer.Option(None, "--package", help=PACKAGE_HELP),
    service_account: Path | None = typer.Option(
        None, "--service-account", help=SERVICE_ACCOUNT_HELP
    ),
    track: str | None = typer.Option(None, "--track", help=TRACK_HELP),
    project_dir: Path | None = typer.Option(None, "--project-dir", help=PROJECT_DIR_HELP),
    config: Path | None = typer.Option(None, "--config", help=CONFIG_HELP),
) -> None:
    """Validate publish inputs without contacting the network."""
    ctx = build_context(
        overrides=ConfigOverrides(
            package_name=package,
            service_account=service_account,
            track=track,
            project_dir=project_dir,
        ),
        config_path=config,
    )
    print_settings(ctx, bundle)

    if bundle is None:
        exit_on_error(validate_settings(ctx.config), ctx)
    else:
        exit_on_error(validate_request(ctx.config, bundle), ctx)

    notes = find_release_notes(ctx.config.project_dir)
    if notes is None:
        ctx.console.print("release notes: none (step will be skipped)", Style.DIM)
    else:
        ctx.console.print(f"release notes: {notes}", Style.DIM)
    ctx.console.success("configuration valid")
