"""Map CI runner labels to the host OS/architecture they provide.

A target's execution host is either a hosted runner image name
(`ubuntu-20.04`, `macos-13`) or a set of self-hosted pool tags
(`self-hosted`, `Linux`, `ARM64`).
"""

from __future__ import annotations

import re

from shipit.platform.detection import Arch, HostInfo, Platform, parse_arch

__all__ = ["infer_host", "runner_labels"]

# Hosted macOS images from macos-14 on run on Apple silicon.
_MACOS_VERSION_RE = re.compile(r"^macos-(\d+)")
_FIRST_ARM_MACOS = 14


def runner_labels(execution_host: str | tuple[str, ...]) -> tuple[str, ...]:
    if isinstance(execution_host, str):
        return (execution_host,)
    return tuple(execution_host)


def _platform_of(label: str) -> Platform:
    if label.startswith(("ubuntu", "linux")):
        return Platform.LINUX
    if label.startswith("macos"):
        return Platform.MACOS
    if label.startswith("windows"):
        return Platform.WINDOWS
    return Platform.UNKNOWN


def _arch_of(label: str) -> Arch:
    arch = parse_arch(label)
    if arch != Arch.UNKNOWN:
        return arch
    if label.endswith("-arm"):
        return Arch.ARM64
    if label == "macos-latest":
        return Arch.ARM64
    m = _MACOS_VERSION_RE.match(label)
    if m is not None:
        return Arch.ARM64 if int(m.group(1)) >= _FIRST_ARM_MACOS else Arch.X64
    return Arch.UNKNOWN


def infer_host(execution_host: str | tuple[str, ...]) -> HostInfo:
    """Infer the host a runner label (or tag set) resolves to.

    Hosted images default to x64 unless the label says otherwise.
    """
    platform = Platform.UNKNOWN
    arch = Arch.UNKNOWN
    for raw in runner_labels(execution_host):
        label = raw.strip().lower()
        if platform == Platform.UNKNOWN:
            platform = _platform_of(label)
        if arch == Arch.UNKNOWN:
            arch = _arch_of(label)

    if arch == Arch.UNKNOWN and platform != Platform.UNKNOWN:
        arch = Arch.X64
    return HostInfo(platform=platform, arch=arch)
