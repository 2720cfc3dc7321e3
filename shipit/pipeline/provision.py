"""Per-target build environment provisioning.

Each target is provisioned by exactly one recipe, matched on its platform
label or compiler triple. A recipe expands into steps:

- OS build essentials (apt, Linux hosts only)
- the Rust target (`rustup target add`)
- a pinned protoc release for the build host
- the MinGW SQLite import library (Windows cross builds)

Steps mutate the host and are not rolled back; the first failing step ends
the target's pipeline instance.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from shipit.core.config import ToolchainConfig
from shipit.core.result import Err, Ok, Result
from shipit.output.console import ConsoleProtocol, Style
from shipit.pipeline.errors import ProvisionError, RecipeError
from shipit.pipeline.model import BuildEnv, TargetSpec
from shipit.pipeline.naming import instance_dir
from shipit.platform.detection import Arch, HostInfo, Platform
from shipit.platform.process import run_silent
from shipit.tools.archive import extract_zip
from shipit.tools.download import Downloader
from shipit.tools.http import HttpClient

__all__ = [
    "DEFAULT_RECIPES",
    "AptInstall",
    "InstallProtoc",
    "Provisioner",
    "Recipe",
    "RustTarget",
    "SqliteImportLib",
    "Step",
    "protoc_url",
    "select_recipe",
]

LINUX_ESSENTIALS = (
    "build-essential",
    "pkg-config",
    "clang",
    "cmake",
    "unzip",
    "libsqlite3-dev",
)
MINGW_PACKAGES = ("gcc-mingw-w64", "mingw-w64", "mingw-w64-x86-64-dev")
MINGW_PREFIX = "x86_64-w64-mingw32"


# -----------------------------------------------------------------------------
# Steps
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AptInstall:
    packages: tuple[str, ...]

    @property
    def name(self) -> str:
        return "apt"

    def describe(self) -> str:
        return f"apt-get install {' '.join(self.packages)}"


@dataclass(frozen=True, slots=True)
class RustTarget:
    triple: str

    @property
    def name(self) -> str:
        return "rust-target"

    def describe(self) -> str:
        return f"rustup target add {self.triple}"


@dataclass(frozen=True, slots=True)
class InstallProtoc:
    version: str
    url: str

    @property
    def name(self) -> str:
        return "protoc"

    def describe(self) -> str:
        return f"protoc {self.version} ({self.url})"


@dataclass(frozen=True, slots=True)
class SqliteImportLib:
    url: str

    @property
    def name(self) -> str:
        return "sqlite-import-lib"

    def describe(self) -> str:
        return f"sqlite3 import library ({self.url})"


Step = AptInstall | RustTarget | InstallProtoc | SqliteImportLib


# -----------------------------------------------------------------------------
# Recipes
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Recipe:
    """Provisioning recipe for one kind of target.

    A recipe matches when every selector it sets equals the target's value.
    """

    name: str
    platform_label: str | None = None
    compiler_triple: str | None = None
    extra_packages: tuple[str, ...] = ()
    sqlite_import_lib: bool = False

    def matches(self, target: TargetSpec) -> bool:
        if self.platform_label is None and self.compiler_triple is None:
            return False
        if self.platform_label is not None and self.platform_label != target.platform_label:
            return False
        if self.compiler_triple is not None and self.compiler_triple != target.compiler_triple:
            return False
        return True


DEFAULT_RECIPES: tuple[Recipe, ...] = (
    Recipe(name="linux-amd64", compiler_triple="x86_64-unknown-linux-gnu"),
    Recipe(name="linux-arm64", platform_label="arm64"),
    Recipe(name="macos-amd64", compiler_triple="x86_64-apple-darwin"),
    Recipe(name="macos-arm64", compiler_triple="aarch64-apple-darwin"),
    Recipe(
        name="windows-gnu-cross",
        compiler_triple="x86_64-pc-windows-gnu",
        extra_packages=MINGW_PACKAGES,
        sqlite_import_lib=True,
    ),
)


def select_recipe(
    target: TargetSpec, recipes: tuple[Recipe, ...] = DEFAULT_RECIPES
) -> Result[Recipe, RecipeError]:
    """Select the single recipe matching target."""
    matched = [r for r in recipes if r.matches(target)]
    if len(matched) != 1:
        return Err(RecipeError(target=target.name, matches=tuple(r.name for r in matched)))
    return Ok(matched[0])


def protoc_url(version: str, host: HostInfo) -> str | None:
    """Release asset URL of protoc for a build host, or None if unsupported."""
    os_name = {Platform.LINUX: "linux", Platform.MACOS: "osx"}.get(host.platform)
    arch = {Arch.X64: "x86_64", Arch.ARM64: "aarch_64"}.get(host.arch)
    if os_name is None or arch is None:
        return None
    return (
        "https://github.com/protocolbuffers/protobuf/releases/download/"
        f"v{version}/protoc-{version}-{os_name}-{arch}.zip"
    )


def sqlite_dll_url(toolchain: ToolchainConfig) -> str:
    return (
        f"https://www.sqlite.org/{toolchain.sqlite_year}/"
        f"sqlite-dll-win-x64-{toolchain.sqlite_version}.zip"
    )


# -----------------------------------------------------------------------------
# Provisioner
# -----------------------------------------------------------------------------


class Provisioner:
    """Runs the provisioning recipe of a target on the current host.

    When `host` is given, a target whose execution host resolves to a
    different OS/arch is rejected before anything is installed.
    """

    def __init__(
        self,
        *,
        workspace_root: Path,
        work_dir: Path,
        toolchain: ToolchainConfig,
        http: HttpClient,
        console: ConsoleProtocol,
        host: HostInfo | None = None,
        recipes: tuple[Recipe, ...] = DEFAULT_RECIPES,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self._root = workspace_root
        self._work_dir = work_dir
        self._toolchain = toolchain
        self._http = http
        self._console = console
        self._host = host
        self._recipes = recipes
        self._base_env = dict(base_env) if base_env is not None else None

    def plan(self, target: TargetSpec) -> Result[tuple[Step, ...], RecipeError | ProvisionError]:
        """Expand the target's recipe into concrete steps."""
        recipe = select_recipe(target, self._recipes)
        if isinstance(recipe, Err):
            return recipe

        host = target.host
        steps: list[Step] = []
        if host.platform == Platform.LINUX:
            steps.append(AptInstall(packages=LINUX_ESSENTIALS + recipe.value.extra_packages))
        steps.append(RustTarget(triple=target.compiler_triple))

        url = protoc_url(self._toolchain.protoc_version, host)
        if url is None:
            return Err(
                ProvisionError(
                    target=target.name,
                    step="protoc",
                    message=f"no protoc release for build host {host}",
                )
            )
        steps.append(InstallProtoc(version=self._toolchain.protoc_version, url=url))

        if recipe.value.sqlite_import_lib:
            steps.append(SqliteImportLib(url=sqlite_dll_url(self._toolchain)))

        return Ok(tuple(steps))

    def provision(self, target: TargetSpec) -> Result[BuildEnv, RecipeError | ProvisionError]:
        """Install everything the target needs and return its build environment."""
        required = target.host
        if self._host is not None and required != self._host:
            return Err(
                ProvisionError(
                    target=target.name,
                    step="host",
                    message=f"target requires a {required} host, running on {self._host}",
                    hint=f"run this target on a runner matching {target.execution_host}",
                )
            )

        plan = self.plan(target)
        if isinstance(plan, Err):
            return plan

        root = instance_dir(self._work_dir, target)
        env = BuildEnv()
        for step in plan.value:
            self._console.print(step.describe(), Style.DIM)
            result = self._run_step(step, target, root)
            if isinstance(result, Err):
                return result
            env = env.with_vars(*result.value)
        return Ok(env)

    def _run_step(
        self, step: Step, target: TargetSpec, root: Path
    ) -> Result[tuple[tuple[str, str], ...], ProvisionError]:
        match step:
            case AptInstall(packages=packages):
                return self._apt_install(target, packages)
            case RustTarget(triple=triple):
                return self._command(
                    target,
                    step.name,
                    ["rustup", "target", "add", triple],
                    cwd=self._root,
                )
            case InstallProtoc(url=url):
                return self._install_protoc(target, url, root)
            case SqliteImportLib(url=url):
                return self._sqlite_import_lib(target, url, root)

    def _command(
        self,
        target: TargetSpec,
        step: str,
        cmd: list[str],
        *,
        cwd: Path,
    ) -> Result[tuple[tuple[str, str], ...], ProvisionError]:
        result = run_silent(cmd, cwd=cwd, env=self._base_env)
        if isinstance(result, Err):
            e = result.error
            return Err(
                ProvisionError(
                    target=target.name,
                    step=step,
                    message=str(e),
                    hint=e.stderr.strip() or None,
                )
            )
        return Ok(())

    def _apt_install(
        self, target: TargetSpec, packages: tuple[str, ...]
    ) -> Result[tuple[tuple[str, str], ...], ProvisionError]:
        update = self._command(
            target,
            "apt",
            ["sudo", "apt-get", "update"],
            cwd=self._root,
        )
        if isinstance(update, Err):
            return update
        return self._command(
            target,
            "apt",
            ["sudo", "apt-get", "install", "-y", *packages],
            cwd=self._root,
        )

    def _downloader(self, root: Path) -> Downloader:
        return Downloader(self._http, root / "cache")

    def _fetch(
        self, target: TargetSpec, step: str, url: str, root: Path
    ) -> Result[Path, ProvisionError]:
        result = self._downloader(root).download(url)
        if isinstance(result, Err):
            return Err(
                ProvisionError(
                    target=target.name,
                    step=step,
                    message=f"download failed: {result.error}",
                    hint=url,
                )
            )
        if result.value.from_cache:
            self._console.print(f"cached: {result.value.path.name}", Style.DIM)
        return Ok(result.value.path)

    def _install_protoc(
        self, target: TargetSpec, url: str, root: Path
    ) -> Result[tuple[tuple[str, str], ...], ProvisionError]:
        archive = self._fetch(target, "protoc", url, root)
        if isinstance(archive, Err):
            return archive

        toolchain_dir = root / "toolchain"
        extracted = extract_zip(archive.value, toolchain_dir, members=("bin/protoc", "include/"))
        if isinstance(extracted, Err):
            self._downloader(root).evict(url)
            return Err(
                ProvisionError(target=target.name, step="protoc", message=str(extracted.error))
            )

        protoc = toolchain_dir / "bin" / "protoc"
        if not protoc.exists():
            return Err(
                ProvisionError(
                    target=target.name,
                    step="protoc",
                    message=f"bin/protoc missing from {archive.value.name}",
                )
            )
        try:
            protoc.chmod(protoc.stat().st_mode | 0o755)
        except OSError as e:
            return Err(
                ProvisionError(
                    target=target.name, step="protoc", message=f"cannot make protoc executable: {e}"
                )
            )
        return Ok((("PROTOC", str(protoc)), ("PROTOC_INCLUDE", str(toolchain_dir / "include"))))

    def _sqlite_import_lib(
        self, target: TargetSpec, url: str, root: Path
    ) -> Result[tuple[tuple[str, str], ...], ProvisionError]:
        archive = self._fetch(target, "sqlite-import-lib", url, root)
        if isinstance(archive, Err):
            return archive

        winlibs = root / "winlibs"
        extracted = extract_zip(archive.value, winlibs)
        if isinstance(extracted, Err):
            self._downloader(root).evict(url)
            return Err(
                ProvisionError(
                    target=target.name, step="sqlite-import-lib", message=str(extracted.error)
                )
            )
        if not (winlibs / "sqlite3.def").exists():
            return Err(
                ProvisionError(
                    target=target.name,
                    step="sqlite-import-lib",
                    message=f"sqlite3.def missing from {archive.value.name}",
                )
            )

        generated = self._command(
            target,
            "sqlite-import-lib",
            [f"{MINGW_PREFIX}-dlltool", "-d", "sqlite3.def", "-l", "libsqlite3.a"],
            cwd=winlibs,
        )
        if isinstance(generated, Err):
            return generated
        return Ok((("SQLITE3_LIB_DIR", str(winlibs)),))
