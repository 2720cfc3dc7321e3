"""Tests for shipit.pipeline.trigger module."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from shipit.core.result import Err, Ok
from shipit.pipeline.trigger import TriggerEvent, resolve_tag, validate_tag


def _event_file(tmp_path: Path, payload: object) -> str:
    path = tmp_path / "event.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


class TestConstructors:
    def test_tag_push_strips_prefix(self) -> None:
        assert TriggerEvent.tag_push("refs/tags/v1.2.3") == TriggerEvent("tag_push", "v1.2.3")

    def test_tag_push_of_branch(self) -> None:
        assert TriggerEvent.tag_push("refs/heads/main").tag is None


class TestResolveTag:
    def test_manual_with_tag(self) -> None:
        assert resolve_tag(TriggerEvent.manual("v0.9.0-dev.1")) == Ok("v0.9.0-dev.1")

    def test_manual_without_tag(self) -> None:
        result = resolve_tag(TriggerEvent.manual(None))

        assert isinstance(result, Err)
        assert result.error.message == "manual release requires a tag"
        assert result.error.hint is not None

    def test_blank_tag(self) -> None:
        assert isinstance(resolve_tag(TriggerEvent.manual("   ")), Err)

    def test_release_without_tag(self) -> None:
        result = resolve_tag(TriggerEvent.release_published(None))

        assert isinstance(result, Err)
        assert "no tag" in result.error.message

    def test_push_of_branch(self) -> None:
        result = resolve_tag(TriggerEvent.tag_push("refs/heads/main"))

        assert isinstance(result, Err)
        assert "not a tag" in result.error.message


@pytest.mark.parametrize("tag", ["v1", "v0.1.0", "v10.20.30", "v1.0.0-rc.1", "v0.9.0-dev"])
def test_valid_tags(tag: str) -> None:
    assert validate_tag(tag) == Ok(tag)


@pytest.mark.parametrize("tag", ["1.0.0", "v", "vx.y", "v1.0.0-", "v1..0", "release-1"])
def test_invalid_tags(tag: str) -> None:
    result = validate_tag(tag)

    assert isinstance(result, Err)
    assert "not a version tag" in result.error.message


class TestFromGithubEnv:
    def test_push(self) -> None:
        env = {"GITHUB_EVENT_NAME": "push", "GITHUB_REF": "refs/tags/v1.0.0"}
        assert TriggerEvent.from_github_env(env) == Ok(TriggerEvent("tag_push", "v1.0.0"))

    def test_push_of_branch_is_rejected(self) -> None:
        env = {"GITHUB_EVENT_NAME": "push", "GITHUB_REF": "refs/heads/main"}
        result = TriggerEvent.from_github_env(env)

        assert isinstance(result, Err)
        assert "not a tag push" in result.error.message

    def test_release_published(self, tmp_path: Path) -> None:
        env = {
            "GITHUB_EVENT_NAME": "release",
            "GITHUB_EVENT_PATH": _event_file(
                tmp_path, {"action": "published", "release": {"tag_name": "v2.0.0"}}
            ),
        }

        result = TriggerEvent.from_github_env(env)

        assert result == Ok(TriggerEvent("release_published", "v2.0.0"))

    def test_release_other_action(self, tmp_path: Path) -> None:
        env = {
            "GITHUB_EVENT_NAME": "release",
            "GITHUB_EVENT_PATH": _event_file(
                tmp_path, {"action": "edited", "release": {"tag_name": "v2.0.0"}}
            ),
        }

        assert isinstance(TriggerEvent.from_github_env(env), Err)

    def test_workflow_dispatch(self, tmp_path: Path) -> None:
        env = {
            "GITHUB_EVENT_NAME": "workflow_dispatch",
            "GITHUB_EVENT_PATH": _event_file(tmp_path, {"inputs": {"tag": "v3.0.0"}}),
        }

        assert TriggerEvent.from_github_env(env) == Ok(TriggerEvent("manual", "v3.0.0"))

    def test_workflow_dispatch_without_input(self, tmp_path: Path) -> None:
        env = {
            "GITHUB_EVENT_NAME": "workflow_dispatch",
            "GITHUB_EVENT_PATH": _event_file(tmp_path, {"inputs": {}}),
        }

        result = TriggerEvent.from_github_env(env)

        assert result == Ok(TriggerEvent("manual", None))
        assert isinstance(result, Ok)
        assert isinstance(resolve_tag(result.value), Err)

    def test_missing_event_path(self) -> None:
        result = TriggerEvent.from_github_env({"GITHUB_EVENT_NAME": "release"})

        assert isinstance(result, Err)
        assert "GITHUB_EVENT_PATH" in result.error.message

    def test_invalid_payload(self, tmp_path: Path) -> None:
        path = tmp_path / "event.json"
        path.write_text("{not json", encoding="utf-8")
        env = {"GITHUB_EVENT_NAME": "workflow_dispatch", "GITHUB_EVENT_PATH": str(path)}

        result = TriggerEvent.from_github_env(env)

        assert isinstance(result, Err)
        assert "invalid event payload" in result.error.message

    def test_outside_actions(self) -> None:
        result = TriggerEvent.from_github_env({})

        assert isinstance(result, Err)
        assert result.error.hint == "pass --tag outside of GitHub Actions"

    def test_unsupported_event(self) -> None:
        result = TriggerEvent.from_github_env({"GITHUB_EVENT_NAME": "pull_request"})

        assert isinstance(result, Err)
        assert result.error.message == "unsupported event: pull_request"
