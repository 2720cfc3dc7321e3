"""Release build of one target with cargo."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from shipit.core.result import Err, Ok, Result
from shipit.output.console import ConsoleProtocol, Style
from shipit.pipeline.errors import BuildError
from shipit.pipeline.model import Artifact, BuildEnv, TargetSpec
from shipit.platform.detection import HostInfo, Platform
from shipit.platform.files import list_tree, sha256_file
from shipit.platform.process import run_silent

__all__ = ["BuildExecutor", "cross_compiler_env"]

# GNU toolchain prefixes for (target OS, target arch).
_CROSS_PREFIXES = {
    (Platform.WINDOWS, "x86_64"): "x86_64-w64-mingw32",
    (Platform.LINUX, "x86_64"): "x86_64-linux-gnu",
    (Platform.LINUX, "aarch64"): "aarch64-linux-gnu",
}


def cross_compiler_env(target: TargetSpec, host: HostInfo) -> tuple[tuple[str, str], ...]:
    """C compiler, archiver and flags for a target built on a foreign OS.

    Empty when the target OS matches the host OS.
    """
    triple = target.triple
    if triple.platform == host.platform:
        return ()
    prefix = _CROSS_PREFIXES.get((triple.platform, triple.arch))
    if prefix is None:
        return ()
    key = triple.env_key
    return (
        (f"CC_{key}", f"{prefix}-gcc"),
        (f"AR_{key}", f"{prefix}-ar"),
        (f"CFLAGS_{key}", "-O2"),
    )


class BuildExecutor:
    """Runs `cargo build --release --target <triple>` for one target."""

    def __init__(
        self,
        *,
        source_dir: Path,
        tool: str,
        console: ConsoleProtocol,
        cargo: str = "cargo",
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self._source_dir = source_dir
        self._tool = tool
        self._console = console
        self._cargo = cargo
        self._base_env = base_env

    def command(self, target: TargetSpec) -> list[str]:
        return [self._cargo, "build", "--release", "--target", target.compiler_triple]

    def output_path(self, target: TargetSpec, target_dir: Path) -> Path:
        return target_dir / target.compiler_triple / "release" / target.binary_name(self._tool)

    def environment(self, target: TargetSpec, env: BuildEnv, target_dir: Path) -> BuildEnv:
        """Provisioned overlay plus cross-compiler variables and the target dir."""
        return env.with_vars(
            *cross_compiler_env(target, target.host),
            ("CARGO_TARGET_DIR", str(target_dir)),
        )

    def build(
        self, target: TargetSpec, env: BuildEnv, *, target_dir: Path
    ) -> Result[Artifact, BuildError]:
        """Compile the target and return its artifact.

        Args:
            target: Target to build
            env: Environment overlay from provisioning
            target_dir: Private cargo target directory of the instance

        Returns:
            Ok(Artifact) on success, Err(BuildError) if cargo fails or the
            binary is not where it should be.
        """
        cmd = self.command(target)
        overlay = self.environment(target, env, target_dir)
        base = self._base_env if self._base_env is not None else os.environ
        self._console.print(" ".join(cmd), Style.DIM)

        result = run_silent(cmd, cwd=self._source_dir, env=overlay.apply(base))
        if isinstance(result, Err):
            return Err(
                BuildError(
                    target=target.name,
                    kind="compile_failed",
                    message=str(result.error),
                    returncode=result.error.returncode,
                )
            )

        if target.triple.platform == Platform.WINDOWS:
            self._show_target_dir(target_dir)

        out = self.output_path(target, target_dir)
        if not out.is_file():
            return Err(
                BuildError(
                    target=target.name,
                    kind="output_missing",
                    message=f"output not found: {out}",
                )
            )

        try:
            digest = sha256_file(out)
        except OSError as e:
            return Err(
                BuildError(
                    target=target.name,
                    kind="output_missing",
                    message=f"cannot read output {out}: {e}",
                )
            )
        return Ok(Artifact(target_name=target.name, path=out, sha256=digest))

    def _show_target_dir(self, target_dir: Path) -> None:
        # Diagnostic only: shows where the binary actually landed.
        try:
            files = list_tree(target_dir)
        except OSError as e:
            self._console.warning(f"cannot list {target_dir}: {e}")
            return
        self._console.print(f"{target_dir}:", Style.DIM)
        for rel in files:
            self._console.print(f"  {rel}", Style.DIM)
