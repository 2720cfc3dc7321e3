"""Tests for shipit.output.console module."""

from __future__ import annotations

import threading

import pytest

from shipit.output.console import ConsoleProtocol, MockConsole, PrefixedConsole, RichConsole, Style


class TestMockConsole:
    def test_captures_styles(self) -> None:
        console = MockConsole()
        console.print("plain")
        console.success("done")
        console.error("failed")
        console.warning("careful")
        console.info("note")

        assert console.messages == [
            "plain",
            "OK done",
            "error: failed",
            "warning: careful",
            "info: note",
        ]
        assert console.has_error()
        assert console.has_warning()
        assert console.count(Style.DEFAULT) == 1

    def test_find(self) -> None:
        console = MockConsole()
        console.print("cargo build", Style.DIM)
        console.print("gh release create")

        assert [o.style for o in console.find("cargo")] == [Style.DIM]

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.header("x")


class TestPrefixedConsole:
    def test_prefixes_every_kind(self) -> None:
        inner = MockConsole()
        console = PrefixedConsole(inner, "linux-amd64")

        console.print("building", Style.DIM)
        console.success("stored")
        console.error("boom")

        assert inner.messages == [
            "[linux-amd64] building",
            "OK [linux-amd64] stored",
            "error: [linux-amd64] boom",
        ]
        assert inner.outputs[0].style == Style.DIM

    def test_empty_message(self) -> None:
        inner = MockConsole()
        PrefixedConsole(inner, "mac").print("")
        assert inner.messages == ["[mac]"]

    def test_concurrent_writers_keep_whole_lines(self) -> None:
        inner = MockConsole()

        def write(name: str) -> None:
            console = PrefixedConsole(inner, name)
            for i in range(50):
                console.print(f"line {i}")

        threads = [threading.Thread(target=write, args=(f"t{n}",)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(inner.outputs) == 200
        for n in range(4):
            assert len(inner.find(f"[t{n}] line")) == 50


class TestRichConsole:
    def test_brackets_are_not_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.print("[linux-amd64] cargo build", Style.DIM)
        console.error("[windows] missing")

        out = capsys.readouterr().out
        assert "[linux-amd64] cargo build" in out
        assert "error: [windows] missing" in out
