"""Compiler target triple parsing.

A triple is `<arch>-<vendor>-<os>[-<abi>]`, e.g. `x86_64-pc-windows-gnu`.
Only architectures and operating systems the toolchain installer can provision
are accepted.
"""

from __future__ import annotations

from dataclasses import dataclass

from shipit.platform.detection import Arch, Platform, parse_arch

__all__ = ["Triple", "parse_triple"]

_OS_PLATFORMS = {
    "linux": Platform.LINUX,
    "darwin": Platform.MACOS,
    "windows": Platform.WINDOWS,
}

# Public OS names used in release filenames.
_PUBLIC_OS = {
    Platform.LINUX: "linux",
    Platform.MACOS: "mac",
    Platform.WINDOWS: "windows",
}


@dataclass(frozen=True, slots=True)
class Triple:
    arch: str
    vendor: str
    os: str
    abi: str | None

    @property
    def value(self) -> str:
        parts = [self.arch, self.vendor, self.os]
        if self.abi:
            parts.append(self.abi)
        return "-".join(parts)

    @property
    def platform(self) -> Platform:
        return _OS_PLATFORMS[self.os]

    @property
    def cpu(self) -> Arch:
        return parse_arch(self.arch)

    @property
    def public_os(self) -> str:
        return _PUBLIC_OS[self.platform]

    @property
    def env_key(self) -> str:
        """Suffix used by cc-rs style per-target variables (CC_<key>)."""
        return self.value.replace("-", "_")

    def __str__(self) -> str:
        return self.value


def parse_triple(text: str) -> Triple | None:
    """Parse a compiler triple, or return None if it is not buildable here."""
    parts = text.strip().split("-")
    if len(parts) not in (3, 4) or any(not p for p in parts):
        return None

    arch, vendor, os_name = parts[0], parts[1], parts[2]
    abi = parts[3] if len(parts) == 4 else None

    if parse_arch(arch) == Arch.UNKNOWN or arch not in ("x86_64", "aarch64"):
        return None
    if os_name not in _OS_PLATFORMS:
        return None
    return Triple(arch=arch, vendor=vendor, os=os_name, abi=abi)
