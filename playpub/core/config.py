"""Typed configuration loading and access.

A publish run is configured from three sources, highest precedence first:
CLI options, environment variables, and an optional ``playpub.toml`` file
with a ``[publish]`` table. Whatever is left unset falls back to defaults.

Values are only collected here. Checking that files exist and that the
track is known happens in ``playpub.publish.validate`` so that all input
problems are reported together.
"""

from __future__ import annotations

import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_int, get_str, get_table

__all__ = [
    "PublisherConfig",
    "ConfigOverrides",
    "ConfigError",
    "load_publisher_config",
    "default_lock_dir",
    # Environment variable names
    "ENV_SERVICE_ACCOUNT",
    "ENV_PACKAGE_NAME",
    "ENV_PROJECT_DIR",
    "ENV_TRACK",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_TRACK",
    "DEFAULT_RETRY_ATTEMPTS",
]

# -----------------------------------------------------------------------------
# Environment
# -----------------------------------------------------------------------------

ENV_SERVICE_ACCOUNT = "PLAY_STORE_SERVICE_ACCOUNT_PATH"
ENV_PACKAGE_NAME = "PACKAGE_NAME"
ENV_PROJECT_DIR = "PROJECT_DIR"
ENV_TRACK = "PLAY_TRACK"

DEFAULT_CONFIG_FILE = "playpub.toml"
DEFAULT_TRACK = "internal"
DEFAULT_RETRY_ATTEMPTS = 3


def default_lock_dir() -> Path:
    return Path(tempfile.gettempdir()) / "playpub-locks"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the config file cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ConfigOverrides:
    """Values given explicitly on the command line (None = not given)."""

    package_name: str | None = None
    service_account: Path | None = None
    track: str | None = None
    project_dir: Path | None = None
    abandon_on_failure: bool = False
    send_for_review: bool = True


@dataclass(frozen=True, slots=True)
class PublisherConfig:
    """Everything the publisher needs besides the bundle path.

    ``package_name`` and ``service_account`` stay None when no source
    provides them; validation reports which environment variable to set.
    """

    package_name: str | None = None
    service_account: Path | None = None
    track: str = DEFAULT_TRACK
    project_dir: Path = Path(".")
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    lock_dir: Path | None = None
    abandon_on_failure: bool = False
    send_for_review: bool = True
    source: Path | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, base_dir: Path) -> PublisherConfig:
        """Create config from a mapping (parsed TOML).

        Relative paths in the file are resolved against ``base_dir``.
        """
        publish: StrDict = get_table(data, "publish") or {}

        service_account = get_str(publish, "service_account")
        project_dir = get_str(publish, "project_dir")
        lock_dir = get_str(publish, "lock_dir")
        retries = get_int(publish, "retry_attempts")

        return cls(
            package_name=get_str(publish, "package_name"),
            service_account=_resolve(base_dir, service_account) if service_account else None,
            track=get_str(publish, "track") or DEFAULT_TRACK,
            project_dir=_resolve(base_dir, project_dir) if project_dir else base_dir,
            retry_attempts=retries if retries is not None else DEFAULT_RETRY_ATTEMPTS,
            lock_dir=_resolve(base_dir, lock_dir) if lock_dir else None,
        )


def _resolve(base_dir: Path, value: str) -> Path:
    p = Path(value).expanduser()
    if p.is_absolute():
        return p
    return base_dir / p


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling import and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def _env_str(env: Mapping[str, str], key: str) -> str | None:
    value = env.get(key)
    if value is None:
        return None
    return value.strip() or None


def load_publisher_config(
    *,
    env: Mapping[str, str],
    cwd: Path,
    config_path: Path | None = None,
    overrides: ConfigOverrides | None = None,
) -> Result[PublisherConfig, ConfigError]:
    """Merge CLI overrides, environment and config file into one config.

    Args:
        env: Environment mapping (usually ``os.environ``).
        cwd: Directory used for the default config file and project dir.
        config_path: Explicit config file; must exist when given.
        overrides: Values passed on the command line.

    Returns:
        Ok(PublisherConfig) on success, Err(ConfigError) if the file is bad.
    """
    cli = overrides or ConfigOverrides()

    file_config = PublisherConfig(project_dir=cwd)
    source: Path | None = None
    candidate = config_path if config_path is not None else cwd / DEFAULT_CONFIG_FILE
    if config_path is not None or candidate.is_file():
        parsed = _parse_toml(candidate)
        if isinstance(parsed, Err):
            return parsed
        file_config = PublisherConfig.from_dict(parsed.value, base_dir=candidate.parent)
        source = candidate

    if file_config.retry_attempts < 1:
        return Err(ConfigError("retry_attempts must be >= 1", path=source))

    env_service_account = _env_str(env, ENV_SERVICE_ACCOUNT)
    env_project_dir = _env_str(env, ENV_PROJECT_DIR)

    service_account = (
        cli.service_account
        or (Path(env_service_account).expanduser() if env_service_account else None)
        or file_config.service_account
    )
    project_dir = (
        cli.project_dir
        or (Path(env_project_dir).expanduser() if env_project_dir else None)
        or file_config.project_dir
    )

    return Ok(
        PublisherConfig(
            package_name=(
                _strip(cli.package_name)
                or _env_str(env, ENV_PACKAGE_NAME)
                or file_config.package_name
            ),
            service_account=service_account,
            track=_strip(cli.track) or _env_str(env, ENV_TRACK) or file_config.track,
            project_dir=project_dir,
            retry_attempts=file_config.retry_attempts,
            lock_dir=file_config.lock_dir or default_lock_dir(),
            abandon_on_failure=cli.abandon_on_failure,
            send_for_review=cli.send_for_review,
            source=source,
        )
    )


def _strip(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None
