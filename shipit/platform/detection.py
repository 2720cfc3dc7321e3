"""Host platform and architecture detection.

The orchestrator needs to know what it is running on to decide whether a
target is a native build or a cross build. Detection is cached.
"""

from __future__ import annotations

import os as _os
import platform as _platform
import sys as _sys
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache

__all__ = [
    "Arch",
    "HostInfo",
    "Platform",
    "detect",
    "detect_arch",
    "detect_platform",
]


class Platform(Enum):
    """Operating system platform."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def is_unix(self) -> bool:
        return self in (Platform.LINUX, Platform.MACOS)

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self == Platform.WINDOWS else ""


class Arch(Enum):
    """CPU architecture."""

    X64 = auto()
    ARM64 = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True, slots=True)
class HostInfo:
    """Operating system and architecture of a build host."""

    platform: Platform
    arch: Arch

    @property
    def is_linux(self) -> bool:
        return self.platform == Platform.LINUX

    @property
    def is_macos(self) -> bool:
        return self.platform == Platform.MACOS

    @property
    def is_windows(self) -> bool:
        return self.platform == Platform.WINDOWS

    def __str__(self) -> str:
        return f"{self.platform}-{self.arch}"


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    """Detect the current operating system (cached)."""
    # NOTE: avoid platform.system() on Windows, it may query WMI.
    system = _sys.platform.lower()
    if system.startswith("linux"):
        return Platform.LINUX
    if system.startswith("darwin"):
        return Platform.MACOS
    if system.startswith(("win32", "cygwin", "msys")):
        return Platform.WINDOWS
    return Platform.UNKNOWN


@lru_cache(maxsize=1)
def detect_arch() -> Arch:
    """Detect the current CPU architecture (cached)."""
    if detect_platform() == Platform.WINDOWS:
        machine = (
            _os.environ.get("PROCESSOR_ARCHITEW6432")
            or _os.environ.get("PROCESSOR_ARCHITECTURE")
            or ""
        ).lower()
    else:
        machine = _platform.machine().lower()
    return parse_arch(machine)


def parse_arch(machine: str) -> Arch:
    """Map a machine/arch string (uname, triple component, runner tag) to Arch."""
    value = machine.strip().lower()
    if value in ("x86_64", "amd64", "x64"):
        return Arch.X64
    if value in ("aarch64", "arm64"):
        return Arch.ARM64
    return Arch.UNKNOWN


@lru_cache(maxsize=1)
def detect() -> HostInfo:
    """Detect the host this process runs on (cached)."""
    return HostInfo(platform=detect_platform(), arch=detect_arch())
