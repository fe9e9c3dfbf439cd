from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from playpub.core.config import ConfigOverrides, PublisherConfig, load_publisher_config
from playpub.core.errors import ErrorCode
from playpub.core.result import Err
from playpub.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: PublisherConfig
    console: ConsoleProtocol


def build_context(
    *,
    overrides: ConfigOverrides | None = None,
    config_path: Path | None = None,
) -> CLIContext:
    result = load_publisher_config(
        env=os.environ,
        cwd=Path.cwd(),
        config_path=config_path,
        overrides=overrides,
    )
    if isinstance(result, Err):
        typer.echo(f"error: {result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    return CLIContext(config=result.value, console=RichConsole())
