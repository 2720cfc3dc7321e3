"""Typed configuration loading for shipit.toml.

Example:
    [project]
    tool = "dash-evo-tool"
    repo = "dashpay/dash-evo-tool"

    [toolchain]
    protoc_version = "25.2"

    [[targets]]
    name = "linux-amd64"
    runs_on = "ubuntu-20.04"
    target = "x86_64-unknown-linux-gnu"
    platform = "amd64"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_list,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "CONFIG_FILENAME",
    "Config",
    "ConfigError",
    "PathsConfig",
    "ProjectConfig",
    "TargetConfig",
    "ToolchainConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "shipit.toml"

DEFAULT_TOOL = "dash-evo-tool"
DEFAULT_PROTOC_VERSION = "25.2"
DEFAULT_SQLITE_YEAR = "2024"
DEFAULT_SQLITE_VERSION = "3460100"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """The binary being shipped and the repository it is released from."""

    tool: str = DEFAULT_TOOL
    repo: str | None = None  # owner/name; None means the gh default repo


@dataclass(frozen=True, slots=True)
class ToolchainConfig:
    """Pinned versions of provisioned build dependencies."""

    protoc_version: str = DEFAULT_PROTOC_VERSION
    sqlite_year: str = DEFAULT_SQLITE_YEAR
    sqlite_version: str = DEFAULT_SQLITE_VERSION


@dataclass(frozen=True, slots=True)
class PathsConfig:
    """Paths relative to the workspace root."""

    source: str = "."
    work_dir: str = ".shipit"
    artifacts: str = ".shipit/artifacts"
    release: str = "release"


@dataclass(frozen=True, slots=True)
class TargetConfig:
    """A raw [[targets]] entry; validated when the matrix is built."""

    name: str
    runs_on: tuple[str, ...]
    target: str
    platform: str
    ext: str = ""


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    targets: tuple[TargetConfig, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: If a [[targets]] entry is malformed.
        """
        project: StrDict = get_table(data, "project") or {}
        toolchain: StrDict = get_table(data, "toolchain") or {}
        paths: StrDict = get_table(data, "paths") or {}

        return cls(
            project=ProjectConfig(
                tool=get_str(project, "tool") or DEFAULT_TOOL,
                repo=get_str(project, "repo"),
            ),
            toolchain=ToolchainConfig(
                protoc_version=get_str(toolchain, "protoc_version") or DEFAULT_PROTOC_VERSION,
                sqlite_year=get_str(toolchain, "sqlite_year") or DEFAULT_SQLITE_YEAR,
                sqlite_version=get_str(toolchain, "sqlite_version") or DEFAULT_SQLITE_VERSION,
            ),
            paths=PathsConfig(
                source=get_str(paths, "source") or ".",
                work_dir=get_str(paths, "work_dir") or ".shipit",
                artifacts=get_str(paths, "artifacts") or ".shipit/artifacts",
                release=get_str(paths, "release") or "release",
            ),
            targets=_parse_targets(data),
        )


def _parse_targets(data: Mapping[str, object]) -> tuple[TargetConfig, ...]:
    raw = get_list(data, "targets")
    if raw is None:
        return ()

    out: list[TargetConfig] = []
    for i, item in enumerate(raw):
        table = as_str_dict(item)
        if table is None:
            raise ValueError(f"targets[{i}] must be a table")

        name = get_str(table, "name")
        target = get_str(table, "target")
        platform = get_str(table, "platform")
        if name is None or target is None or platform is None:
            raise ValueError(f"targets[{i}] requires name, target and platform")

        # runs_on is either a single runner label or a list of pool tags.
        runs_on_str = get_str(table, "runs_on")
        runs_on = (runs_on_str,) if runs_on_str else get_str_list(table, "runs_on")
        if not runs_on:
            raise ValueError(f"targets[{i}] ({name}) requires runs_on")

        out.append(
            TargetConfig(
                name=name,
                runs_on=runs_on,
                target=target,
                platform=platform,
                ext=get_str(table, "ext") or "",
            )
        )
    return tuple(out)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to shipit.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config if the file exists, else return defaults.

    A present but broken file is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
