"""Tests for shipit.pipeline.provision module."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest

from shipit.core.config import ToolchainConfig
from shipit.core.result import Err, Ok, Result
from shipit.output.console import MockConsole
from shipit.pipeline import provision as provision_mod
from shipit.pipeline.matrix import DEFAULT_TARGETS
from shipit.pipeline.model import TargetSpec
from shipit.pipeline.provision import (
    LINUX_ESSENTIALS,
    MINGW_PACKAGES,
    AptInstall,
    InstallProtoc,
    Provisioner,
    Recipe,
    RustTarget,
    SqliteImportLib,
    protoc_url,
    select_recipe,
    sqlite_dll_url,
)
from shipit.platform.detection import Arch, HostInfo, Platform
from shipit.platform.process import ProcessError
from shipit.tools.http import MockHttpClient

TOOLCHAIN = ToolchainConfig()
LINUX_X64 = HostInfo(Platform.LINUX, Arch.X64)
PROTOC_LINUX = protoc_url("25.2", LINUX_X64)
SQLITE = sqlite_dll_url(TOOLCHAIN)


def _target(name: str) -> TargetSpec:
    return next(t for t in DEFAULT_TARGETS if t.name == name)


def _zip_bytes(entries: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


PROTOC_ZIP = _zip_bytes(
    {
        "bin/protoc": b"\x7fELF",
        "include/google/protobuf/timestamp.proto": b'syntax = "proto3";',
        "readme.txt": b"protoc",
    }
)
SQLITE_ZIP = _zip_bytes({"sqlite3.def": b"EXPORTS\n", "sqlite3.dll": b"MZ"})


class FakeRunner:
    """Stands in for run_silent; records commands and fakes dlltool output."""

    def __init__(self, fail_on: str | None = None, stderr: str = "") -> None:
        self.calls: list[list[str]] = []
        self.fail_on = fail_on
        self.stderr = stderr

    def __call__(
        self,
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Result[None, ProcessError]:
        del env, timeout
        self.calls.append(cmd)
        if self.fail_on is not None and self.fail_on in cmd:
            return Err(ProcessError(tuple(cmd), 100, "", self.stderr))
        if cmd[0].endswith("dlltool"):
            (cwd / "libsqlite3.a").write_bytes(b"!<arch>")
        return Ok(None)


def _provisioner(
    tmp_path: Path, http: MockHttpClient | None = None, host: HostInfo | None = None
) -> tuple[Provisioner, MockConsole]:
    console = MockConsole()
    if http is None:
        http = MockHttpClient()
        http.set_download(PROTOC_LINUX or "", PROTOC_ZIP)
        http.set_download(SQLITE, SQLITE_ZIP)
    provisioner = Provisioner(
        workspace_root=tmp_path,
        work_dir=tmp_path / ".shipit",
        toolchain=TOOLCHAIN,
        http=http,
        console=console,
        host=host,
    )
    return provisioner, console


class TestRecipes:
    @pytest.mark.parametrize(
        ("target", "recipe"),
        [
            ("linux-amd64", "linux-amd64"),
            ("linux-arm64", "linux-arm64"),
            ("macos-amd64", "macos-amd64"),
            ("macos-arm64", "macos-arm64"),
            ("Windows", "windows-gnu-cross"),
        ],
    )
    def test_every_default_target_has_one_recipe(self, target: str, recipe: str) -> None:
        result = select_recipe(_target(target))

        assert isinstance(result, Ok)
        assert result.value.name == recipe

    def test_no_recipe(self) -> None:
        musl = TargetSpec("musl", "ubuntu-20.04", "x86_64-unknown-linux-musl", "musl")

        result = select_recipe(musl)

        assert isinstance(result, Err)
        assert result.error.matches == ()

    def test_ambiguous_recipes(self) -> None:
        recipes = (
            Recipe(name="by-label", platform_label="amd64"),
            Recipe(name="by-triple", compiler_triple="x86_64-unknown-linux-gnu"),
        )

        result = select_recipe(_target("linux-amd64"), recipes)

        assert isinstance(result, Err)
        assert result.error.matches == ("by-label", "by-triple")
        assert "ambiguous" in result.error.message

    def test_recipe_without_selector_never_matches(self) -> None:
        assert not Recipe(name="empty").matches(_target("linux-amd64"))


class TestUrls:
    def test_protoc_linux(self) -> None:
        assert protoc_url("25.2", LINUX_X64) == (
            "https://github.com/protocolbuffers/protobuf/releases/download/"
            "v25.2/protoc-25.2-linux-x86_64.zip"
        )

    def test_protoc_mac_arm(self) -> None:
        url = protoc_url("25.2", HostInfo(Platform.MACOS, Arch.ARM64))
        assert url is not None
        assert url.endswith("protoc-25.2-osx-aarch_64.zip")

    def test_protoc_unsupported_host(self) -> None:
        assert protoc_url("25.2", HostInfo(Platform.WINDOWS, Arch.X64)) is None

    def test_sqlite(self) -> None:
        assert SQLITE == "https://www.sqlite.org/2024/sqlite-dll-win-x64-3460100.zip"


class TestPlan:
    def test_linux_native(self, tmp_path: Path) -> None:
        provisioner, _ = _provisioner(tmp_path)

        result = provisioner.plan(_target("linux-amd64"))

        assert result == Ok(
            (
                AptInstall(packages=LINUX_ESSENTIALS),
                RustTarget(triple="x86_64-unknown-linux-gnu"),
                InstallProtoc(version="25.2", url=PROTOC_LINUX or ""),
            )
        )

    def test_mac_has_no_apt(self, tmp_path: Path) -> None:
        provisioner, _ = _provisioner(tmp_path)

        result = provisioner.plan(_target("macos-amd64"))

        assert isinstance(result, Ok)
        assert [s.name for s in result.value] == ["rust-target", "protoc"]
        protoc = result.value[1]
        assert isinstance(protoc, InstallProtoc)
        assert protoc.url.endswith("osx-x86_64.zip")

    def test_windows_cross(self, tmp_path: Path) -> None:
        provisioner, _ = _provisioner(tmp_path)

        result = provisioner.plan(_target("Windows"))

        assert isinstance(result, Ok)
        assert result.value[0] == AptInstall(packages=LINUX_ESSENTIALS + MINGW_PACKAGES)
        assert result.value[-1] == SqliteImportLib(url=SQLITE)

    def test_no_protoc_for_host(self, tmp_path: Path) -> None:
        provisioner, _ = _provisioner(tmp_path)
        target = TargetSpec(
            "win-native", "windows-2022", "x86_64-pc-windows-gnu", "windows", ".exe"
        )

        result = provisioner.plan(target)

        assert isinstance(result, Err)
        assert result.error.step == "protoc"


class TestProvision:
    def test_windows_cross_full(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        runner = FakeRunner()
        monkeypatch.setattr(provision_mod, "run_silent", runner)
        provisioner, console = _provisioner(tmp_path, host=LINUX_X64)

        result = provisioner.provision(_target("Windows"))

        assert isinstance(result, Ok)
        root = tmp_path / ".shipit" / "instances" / "Windows"
        env = result.value
        assert env.get("PROTOC") == str(root / "toolchain" / "bin" / "protoc")
        assert env.get("PROTOC_INCLUDE") == str(root / "toolchain" / "include")
        assert env.get("SQLITE3_LIB_DIR") == str(root / "winlibs")
        assert (root / "toolchain" / "bin" / "protoc").stat().st_mode & 0o111
        assert not (root / "toolchain" / "readme.txt").exists()
        assert (root / "winlibs" / "libsqlite3.a").exists()

        assert runner.calls == [
            ["sudo", "apt-get", "update"],
            ["sudo", "apt-get", "install", "-y", *LINUX_ESSENTIALS, *MINGW_PACKAGES],
            ["rustup", "target", "add", "x86_64-pc-windows-gnu"],
            ["x86_64-w64-mingw32-dlltool", "-d", "sqlite3.def", "-l", "libsqlite3.a"],
        ]
        assert console.find("rustup target add x86_64-pc-windows-gnu")

    def test_host_mismatch(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        runner = FakeRunner()
        monkeypatch.setattr(provision_mod, "run_silent", runner)
        provisioner, _ = _provisioner(tmp_path, host=HostInfo(Platform.MACOS, Arch.ARM64))

        result = provisioner.provision(_target("linux-amd64"))

        assert isinstance(result, Err)
        assert result.error.step == "host"
        assert runner.calls == []

    def test_apt_failure_stops(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        runner = FakeRunner(fail_on="install", stderr="E: Unable to locate package clang")
        monkeypatch.setattr(provision_mod, "run_silent", runner)
        provisioner, _ = _provisioner(tmp_path)

        result = provisioner.provision(_target("linux-amd64"))

        assert isinstance(result, Err)
        assert result.error.step == "apt"
        assert result.error.hint == "E: Unable to locate package clang"
        assert not any(cmd[0] == "rustup" for cmd in runner.calls)

    def test_protoc_download_failure(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(provision_mod, "run_silent", FakeRunner())
        provisioner, _ = _provisioner(tmp_path, http=MockHttpClient())

        result = provisioner.provision(_target("macos-arm64"))

        assert isinstance(result, Err)
        assert result.error.step == "protoc"
        assert result.error.message.startswith("download failed: HTTP 404")
        assert result.error.hint is not None
        assert result.error.hint.endswith("osx-aarch_64.zip")

    def test_sqlite_archive_without_def(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(provision_mod, "run_silent", FakeRunner())
        http = MockHttpClient()
        http.set_download(PROTOC_LINUX or "", PROTOC_ZIP)
        http.set_download(SQLITE, _zip_bytes({"sqlite3.dll": b"MZ"}))
        provisioner, _ = _provisioner(tmp_path, http=http)

        result = provisioner.provision(_target("Windows"))

        assert isinstance(result, Err)
        assert result.error.step == "sqlite-import-lib"
        assert "sqlite3.def missing" in result.error.message

    def test_dlltool_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(provision_mod, "run_silent", FakeRunner(fail_on="sqlite3.def"))
        provisioner, _ = _provisioner(tmp_path)

        result = provisioner.provision(_target("Windows"))

        assert isinstance(result, Err)
        assert result.error.step == "sqlite-import-lib"

    def test_recipe_error_passes_through(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(provision_mod, "run_silent", FakeRunner())
        provisioner, _ = _provisioner(tmp_path)
        musl = TargetSpec("musl", "ubuntu-20.04", "x86_64-unknown-linux-musl", "musl")

        result = provisioner.provision(musl)

        assert isinstance(result, Err)
        assert result.error.target == "musl"

    def test_protoc_download_is_cached(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(provision_mod, "run_silent", FakeRunner())
        http = MockHttpClient()
        http.set_download(PROTOC_LINUX or "", PROTOC_ZIP)
        provisioner, console = _provisioner(tmp_path, http=http)

        provisioner.provision(_target("linux-amd64"))
        result = provisioner.provision(_target("linux-amd64"))

        assert isinstance(result, Ok)
        assert http.calls == [PROTOC_LINUX]
        assert console.find("cached: ")

    def test_broken_archive_is_fetched_again(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(provision_mod, "run_silent", FakeRunner())
        http = MockHttpClient()
        http.set_download(PROTOC_LINUX or "", b"truncated")
        provisioner, _ = _provisioner(tmp_path, http=http)

        first = provisioner.provision(_target("linux-amd64"))
        http.set_download(PROTOC_LINUX or "", PROTOC_ZIP)
        second = provisioner.provision(_target("linux-amd64"))

        assert isinstance(first, Err)
        assert first.error.step == "protoc"
        assert isinstance(second, Ok)
        assert http.calls == [PROTOC_LINUX, PROTOC_LINUX]

    def test_instance_dir_blocked_by_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(provision_mod, "run_silent", FakeRunner())
        provisioner, _ = _provisioner(tmp_path)
        instances = tmp_path / ".shipit" / "instances"
        instances.mkdir(parents=True)
        (instances / "linux-amd64").write_bytes(b"")

        result = provisioner.provision(_target("linux-amd64"))

        assert isinstance(result, Err)
        assert result.error.step == "protoc"
        assert "cannot create cache dir" in result.error.message

    def test_commands_have_no_time_limit(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        timeouts: list[float | None] = []

        def record(
            cmd: list[str],
            cwd: Path,
            env: dict[str, str] | None = None,
            *,
            timeout: float | None = None,
        ) -> Result[None, ProcessError]:
            timeouts.append(timeout)
            return FakeRunner()(cmd, cwd, env, timeout=timeout)

        monkeypatch.setattr(provision_mod, "run_silent", record)
        provisioner, _ = _provisioner(tmp_path)

        result = provisioner.provision(_target("Windows"))

        assert isinstance(result, Ok)
        assert timeouts
        assert set(timeouts) == {None}
