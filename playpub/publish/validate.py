from __future__ import annotations

import os
from pathlib import Path
from typing import cast

from playpub.core.config import ENV_PACKAGE_NAME, ENV_SERVICE_ACCOUNT, PublisherConfig
from playpub.core.result import Err, Ok, Result
from playpub.publish.errors import ConfigurationError
from playpub.publish.model import TRACKS, Credential, PublishRequest, Track
from playpub.publish.notes import find_release_notes


def _check_package(config: PublisherConfig) -> list[str]:
    if config.package_name is None or not config.package_name.strip():
        return [f"package name not set (set {ENV_PACKAGE_NAME} or pass --package)"]
    return []


def _check_service_account(config: PublisherConfig) -> list[str]:
    path = config.service_account
    if path is None:
        return [
            f"service account not set (set {ENV_SERVICE_ACCOUNT} or pass --service-account)"
        ]
    if not path.exists():
        return [f"service account file not found: {path}"]
    if not path.is_file():
        return [f"service account path is not a file: {path}"]
    return []


def _check_track(config: PublisherConfig) -> list[str]:
    if config.track not in TRACKS:
        return [f"unknown track '{config.track}' (expected one of: {', '.join(TRACKS)})"]
    return []


def _check_bundle(bundle: Path) -> list[str]:
    if not bundle.exists():
        return [f"bundle not found: {bundle}"]
    if not bundle.is_file():
        return [f"bundle is not a file: {bundle}"]
    if not os.access(bundle, os.R_OK):
        return [f"bundle is not readable: {bundle}"]
    return []


def _problems_error(problems: list[str]) -> ConfigurationError:
    if len(problems) == 1:
        return ConfigurationError(message=problems[0], problems=tuple(problems))
    return ConfigurationError(
        message=f"{len(problems)} configuration problems",
        hint="; ".join(problems),
        problems=tuple(problems),
    )


def validate_settings(config: PublisherConfig) -> Result[None, ConfigurationError]:
    """Validate everything except the bundle path."""
    problems = [*_check_package(config), *_check_service_account(config), *_check_track(config)]
    if problems:
        return Err(_problems_error(problems))
    return Ok(None)


def validate_request(
    config: PublisherConfig, bundle: Path | None
) -> Result[PublishRequest, ConfigurationError]:
    """Build a PublishRequest, or report every input problem at once.

    Only the local filesystem is consulted.
    """
    problems: list[str] = []
    if bundle is None:
        problems.append("bundle path not given")
    else:
        problems.extend(_check_bundle(bundle))
    problems.extend(_check_package(config))
    problems.extend(_check_service_account(config))
    problems.extend(_check_track(config))

    if problems:
        return Err(_problems_error(problems))

    assert bundle is not None
    assert config.package_name is not None
    assert config.service_account is not None
    return Ok(
        PublishRequest(
            package_name=config.package_name.strip(),
            bundle_path=bundle,
            track=cast(Track, config.track),
            credential=Credential(path=config.service_account),
            release_notes_path=find_release_notes(config.project_dir),
        )
    )
