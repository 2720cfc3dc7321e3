"""Tests for shipit.pipeline.naming module."""

from __future__ import annotations

from pathlib import Path

import pytest

from shipit.pipeline.matrix import DEFAULT_TARGETS
from shipit.pipeline.naming import artifact_key, canonical_name, instance_dir

TOOL = "dash-evo-tool"


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("linux-amd64", "dash-evo-tool-x86_64-linux"),
        ("linux-arm64", "dash-evo-tool-aarch64-linux"),
        ("macos-amd64", "dash-evo-tool-x86_64-mac"),
        ("macos-arm64", "dash-evo-tool-aarch64-mac"),
        ("Windows", "dash-evo-tool.exe"),
    ],
)
def test_canonical_names(name: str, expected: str) -> None:
    target = next(t for t in DEFAULT_TARGETS if t.name == name)
    assert canonical_name(TOOL, target) == expected


def test_canonical_names_never_contain_triple() -> None:
    for target in DEFAULT_TARGETS:
        assert target.compiler_triple not in canonical_name(TOOL, target)


def test_artifact_key_uses_triple() -> None:
    target = DEFAULT_TARGETS[0]
    assert artifact_key(TOOL, target) == "dash-evo-tool-x86_64-unknown-linux-gnu"


def test_artifact_keys_are_unique() -> None:
    keys = {artifact_key(TOOL, t) for t in DEFAULT_TARGETS}
    assert len(keys) == len(DEFAULT_TARGETS)


def test_instance_dir() -> None:
    target = DEFAULT_TARGETS[1]
    assert instance_dir(Path("/w"), target) == Path("/w/instances/linux-arm64")
