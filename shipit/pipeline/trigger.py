"""Trigger resolution: which tag is being released.

A run starts from one of three events:
- a pushed tag (`refs/tags/v1.2.3`, `refs/tags/v1.2.3-dev.4`)
- a release published on the hosting platform
- a manual dispatch that must carry a `tag` input

The tag is resolved and validated before any pipeline instance starts.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from shipit.core.result import Err, Ok, Result
from shipit.core.structured import StrDict, as_str_dict, get_str, get_table
from shipit.pipeline.errors import TriggerError

__all__ = ["TAG_PATTERN", "TriggerEvent", "TriggerKind", "resolve_tag", "validate_tag"]

TAG_PATTERN = re.compile(r"^v\d+(\.\d+)*(-[0-9A-Za-z][0-9A-Za-z.]*)?$")
_TAG_REF_PREFIX = "refs/tags/"

TriggerKind = Literal["tag_push", "release_published", "manual"]


@dataclass(frozen=True, slots=True)
class TriggerEvent:
    kind: TriggerKind
    tag: str | None

    @classmethod
    def manual(cls, tag: str | None) -> TriggerEvent:
        return cls(kind="manual", tag=tag)

    @classmethod
    def tag_push(cls, ref: str) -> TriggerEvent:
        tag = ref[len(_TAG_REF_PREFIX) :] if ref.startswith(_TAG_REF_PREFIX) else None
        return cls(kind="tag_push", tag=tag)

    @classmethod
    def release_published(cls, tag: str | None) -> TriggerEvent:
        return cls(kind="release_published", tag=tag)

    @classmethod
    def from_github_env(cls, environ: Mapping[str, str]) -> Result[TriggerEvent, TriggerError]:
        """Read the triggering event of a GitHub Actions run."""
        name = environ.get("GITHUB_EVENT_NAME", "")
        match name:
            case "push":
                ref = environ.get("GITHUB_REF", "")
                if not ref.startswith(_TAG_REF_PREFIX):
                    return Err(TriggerError(f"push of {ref or 'unknown ref'} is not a tag push"))
                return Ok(cls.tag_push(ref))
            case "release":
                payload = _read_event(environ)
                if isinstance(payload, Err):
                    return payload
                action = get_str(payload.value, "action")
                if action != "published":
                    return Err(TriggerError(f"release event action {action!r} does not release"))
                release = get_table(payload.value, "release") or {}
                return Ok(cls.release_published(get_str(release, "tag_name")))
            case "workflow_dispatch":
                payload = _read_event(environ)
                if isinstance(payload, Err):
                    return payload
                inputs = get_table(payload.value, "inputs") or {}
                return Ok(cls.manual(get_str(inputs, "tag")))
            case "":
                return Err(
                    TriggerError(
                        "GITHUB_EVENT_NAME is not set",
                        hint="pass --tag outside of GitHub Actions",
                    )
                )
            case _:
                return Err(TriggerError(f"unsupported event: {name}"))


def _read_event(environ: Mapping[str, str]) -> Result[StrDict, TriggerError]:
    raw_path = environ.get("GITHUB_EVENT_PATH")
    if not raw_path:
        return Err(TriggerError("GITHUB_EVENT_PATH is not set"))
    path = Path(raw_path)
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(TriggerError(f"cannot read event payload: {e}"))
    except json.JSONDecodeError as e:
        return Err(TriggerError(f"invalid event payload: {e}"))
    data = as_str_dict(obj)
    if data is None:
        return Err(TriggerError("event payload must be a JSON object"))
    return Ok(data)


def validate_tag(tag: str) -> Result[str, TriggerError]:
    if TAG_PATTERN.match(tag) is None:
        return Err(
            TriggerError(
                f"tag {tag!r} is not a version tag",
                hint="expected e.g. v0.1.0 or v0.1.0-dev.1",
            )
        )
    return Ok(tag)


def resolve_tag(event: TriggerEvent) -> Result[str, TriggerError]:
    """Return the validated release tag of an event."""
    tag = (event.tag or "").strip()
    if not tag:
        match event.kind:
            case "manual":
                return Err(
                    TriggerError(
                        "manual release requires a tag",
                        hint="provide the tag input, e.g. v0.1.0",
                    )
                )
            case "tag_push":
                return Err(TriggerError("pushed ref is not a tag"))
            case "release_published":
                return Err(TriggerError("published release has no tag"))
    return validate_tag(tag)
