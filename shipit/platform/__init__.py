"""Host platform helpers: detection, processes, files."""

from .detection import Arch, HostInfo, Platform, detect
from .process import ProcessError, run, run_silent

__all__ = [
    "Arch",
    "HostInfo",
    "Platform",
    "ProcessError",
    "detect",
    "run",
    "run_silent",
]
