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
from playpub.core.result import Ok
from playpub.output.console import Style
from playpub.publish.backend import connect_google_play
from playpub.publish.publisher import ReleasePublisher


def publish(
    bundle: Path = typer.Argument(..., help="Path to the .aab to upload"),
    package: str | None = typer.Option(None, "--package", help=PACKAGE_HELP),
    service_account: Path | None = typer.Option(
        None, "--service-account", help=SERVICE_ACCOUNT_HELP
    ),
    track: str | None = typer.Option(None, "--track", help=TRACK_HELP),
    project_dir: Path | None = typer.Option(None, "--project-dir", help=PROJECT_DIR_HELP),
    config: Path | None = typer.Option(None, "--config", help=CONFIG_HELP),
    abandon_on_failure: bool = typer.Option(
        False,
        "--abandon-on-failure",
        help="Delete the edit if a step fails after it was opened",
    ),
    no_review: bool = typer.Option(
        False, "--no-review", help="Commit with changesNotSentForReview"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate inputs and stop"),
) -> None:
    """Upload a bundle, assign it to a track and commit the edit."""
    ctx = build_context(
        overrides=ConfigOverrides(
            package_name=package,
            service_account=service_account,
            track=track,
            project_dir=project_dir,
            abandon_on_failure=abandon_on_failure,
            send_for_review=not no_review,
        ),
        config_path=config,
    )
    console = ctx.console
    publisher = ReleasePublisher(config=ctx.config, console=console, connect=connect_google_play)

    if dry_run:
        print_settings(ctx, bundle)
        exit_on_error(publisher.validate(bundle), ctx)
        console.success("inputs valid (dry run: nothing uploaded)")
        return

    console.header(f"Publishing {bundle.name}")
    result = publisher.publish(bundle)
    exit_on_error(result, ctx)

    assert isinstance(result, Ok)
    outcome = result.value
    console.print(
        f"{outcome.package_name}: version code {outcome.version_code} released to "
        f"'{outcome.track}'",
        Style.SUCCESS,
    )
