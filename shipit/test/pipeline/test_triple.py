"""Tests for shipit.pipeline.triple module."""

from __future__ import annotations

import pytest

from shipit.pipeline.triple import parse_triple
from shipit.platform.detection import Arch, Platform


class TestParseTriple:
    def test_four_parts(self) -> None:
        triple = parse_triple("x86_64-pc-windows-gnu")

        assert triple is not None
        assert (triple.arch, triple.vendor, triple.os, triple.abi) == (
            "x86_64",
            "pc",
            "windows",
            "gnu",
        )
        assert triple.platform == Platform.WINDOWS
        assert triple.cpu == Arch.X64

    def test_three_parts(self) -> None:
        triple = parse_triple("aarch64-apple-darwin")

        assert triple is not None
        assert triple.abi is None
        assert triple.value == "aarch64-apple-darwin"
        assert triple.public_os == "mac"
        assert triple.cpu == Arch.ARM64

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "x86_64",
            "x86_64-linux",
            "riscv64gc-unknown-linux-gnu",
            "x86_64-unknown-freebsd",
            "x86_64--linux-gnu",
            "amd64-unknown-linux-gnu",
        ],
    )
    def test_rejected(self, text: str) -> None:
        assert parse_triple(text) is None


def test_env_key() -> None:
    triple = parse_triple("x86_64-pc-windows-gnu")
    assert triple is not None
    assert triple.env_key == "x86_64_pc_windows_gnu"


def test_str_round_trips_value() -> None:
    triple = parse_triple(" x86_64-unknown-linux-gnu ")
    assert triple is not None
    assert str(triple) == "x86_64-unknown-linux-gnu"
    assert triple.public_os == "linux"
