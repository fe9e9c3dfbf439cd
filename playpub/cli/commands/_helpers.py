"""Shared helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer

from playpub.core.result import Err, Result
from playpub.output.errors import print_publish_error, publish_error_exit_code
from playpub.output.console import Style
from playpub.publish.errors import PublishError

if TYPE_CHECKING:
    from playpub.cli.context import CLIContext


PACKAGE_HELP = "Package name (env: PACKAGE_NAME)"
SERVICE_ACCOUNT_HELP = "Service account JSON key (env: PLAY_STORE_SERVICE_ACCOUNT_PATH)"
TRACK_HELP = "Track: internal|alpha|beta|production (env: PLAY_TRACK)"
PROJECT_DIR_HELP = "Directory holding distribution/whatsnew/en-US.txt (env: PROJECT_DIR)"
CONFIG_HELP = "Config file (default: ./playpub.toml if present)"


def exit_on_error[T](result: Result[T, PublishError], ctx: CLIContext) -> None:
    """Exit with the error's code if result is Err, otherwise return.

    The error line is the last thing printed before exit.
    """
    if isinstance(result, Err):
        print_publish_error(result.error, ctx.console)
        raise typer.Exit(code=publish_error_exit_code(result.error))


def print_settings(ctx: CLIContext, bundle: Path | None = None) -> None:
    config = ctx.config
    console = ctx.console
    if config.source is not None:
        console.print(f"config: {config.source}", Style.DIM)
    if bundle is not None:
        console.print(f"bundle: {bundle}", Style.DIM)
    console.print(f"package: {config.package_name or '(unset)'}", Style.DIM)
    console.print(f"service account: {config.service_account or '(unset)'}", Style.DIM)
    console.print(f"track: {config.track}", Style.DIM)
    console.print(f"project dir: {config.project_dir}", Style.DIM)
