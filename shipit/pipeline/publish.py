"""Publishing a release bundle to GitHub through the gh CLI.

A bundle is published in one logical operation. For a new tag that is a
single `gh release create` carrying every file; for a tag whose release
already exists (the published-release trigger) the files are uploaded and the
release is re-flagged as a prerelease. If a create fails after the release
object appeared, that half-created release is deleted so no partial release
stays visible. A release that existed before the call is never deleted.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from shipit.core.result import Err, Ok, Result
from shipit.core.structured import as_str_dict, get_str
from shipit.output.console import ConsoleProtocol, Style
from shipit.pipeline.errors import PublishError
from shipit.pipeline.model import PublishedRelease, ReleaseBundle
from shipit.platform.process import run as run_process

__all__ = ["GhReleasePublisher", "RecordingPublisher", "ReleasePublisher"]

_NOT_FOUND_MARKERS = ("release not found", "not found", "http 404")


class ReleasePublisher(Protocol):
    def publish(self, bundle: ReleaseBundle) -> Result[PublishedRelease, PublishError]: ...


def _is_not_found(stderr: str) -> bool:
    text = stderr.lower()
    return any(marker in text for marker in _NOT_FOUND_MARKERS)


class GhReleasePublisher:
    """ReleasePublisher backed by `gh release`."""

    def __init__(
        self,
        *,
        workspace_root: Path,
        console: ConsoleProtocol,
        repo: str | None = None,
        dry_run: bool = False,
    ) -> None:
        self._root = workspace_root
        self._console = console
        self._repo = repo
        self._dry_run = dry_run

    def _gh(self, *args: str) -> list[str]:
        cmd = ["gh", "release", *args]
        if self._repo:
            cmd.extend(["--repo", self._repo])
        return cmd

    def create_command(self, bundle: ReleaseBundle) -> list[str]:
        args = ["create", bundle.tag, *(str(f) for f in bundle.files), "--title", bundle.tag]
        if bundle.prerelease:
            args.append("--prerelease")
        if bundle.draft:
            args.append("--draft")
        return self._gh(*args)

    def view(self, tag: str) -> Result[str | None, PublishError]:
        """Return the URL of the tag's release, None if it has none."""
        result = run_process(self._gh("view", tag, "--json", "url"), cwd=self._root)
        if isinstance(result, Err):
            if _is_not_found(result.error.stderr):
                return Ok(None)
            return Err(
                PublishError(
                    tag=tag,
                    message="failed to query release",
                    hint=result.error.stderr.strip() or None,
                )
            )

        try:
            data = as_str_dict(json.loads(result.value))
        except json.JSONDecodeError as e:
            return Err(PublishError(tag=tag, message=f"gh returned invalid JSON: {e}"))
        url = get_str(data, "url") if data is not None else None
        return Ok(url or "")

    def publish(self, bundle: ReleaseBundle) -> Result[PublishedRelease, PublishError]:
        if self._dry_run:
            self._console.print(" ".join(self.create_command(bundle)), Style.DIM)
            return Ok(PublishedRelease(tag=bundle.tag, files=bundle.names, created=False))

        existing = self.view(bundle.tag)
        if isinstance(existing, Err):
            return existing
        if existing.value is None:
            return self._create(bundle)
        return self._update(bundle, existing.value)

    def _create(self, bundle: ReleaseBundle) -> Result[PublishedRelease, PublishError]:
        cmd = self.create_command(bundle)
        self._console.print(" ".join(cmd[:4]) + " ...", Style.DIM)
        result = run_process(cmd, cwd=self._root)
        if isinstance(result, Ok):
            url = result.value.strip() or None
            return Ok(PublishedRelease(tag=bundle.tag, files=bundle.names, created=True, url=url))

        hint = result.error.stderr.strip() or None
        cleanup = self._discard_partial(bundle.tag)
        if cleanup is not None:
            hint = f"{hint}; {cleanup}" if hint else cleanup
        return Err(PublishError(tag=bundle.tag, message="failed to create release", hint=hint))

    def _discard_partial(self, tag: str) -> str | None:
        """Delete a release left behind by a failed create; describe what happened."""
        after = self.view(tag)
        if isinstance(after, Err) or after.value is None:
            return None

        deleted = run_process(self._gh("delete", tag, "--yes"), cwd=self._root)
        if isinstance(deleted, Err):
            return f"partial release {tag} could not be removed: {deleted.error.stderr.strip()}"
        self._console.warning(f"removed partial release {tag}")
        return f"partial release {tag} removed"

    def _update(
        self, bundle: ReleaseBundle, url: str
    ) -> Result[PublishedRelease, PublishError]:
        upload = run_process(
            self._gh("upload", bundle.tag, *(str(f) for f in bundle.files), "--clobber"),
            cwd=self._root,
        )
        if isinstance(upload, Err):
            return Err(
                PublishError(
                    tag=bundle.tag,
                    message="failed to upload release files",
                    hint=upload.error.stderr.strip() or None,
                )
            )

        flags = [
            f"--prerelease={str(bundle.prerelease).lower()}",
            f"--draft={str(bundle.draft).lower()}",
        ]
        edit = run_process(self._gh("edit", bundle.tag, *flags), cwd=self._root)
        if isinstance(edit, Err):
            return Err(
                PublishError(
                    tag=bundle.tag,
                    message="failed to mark release as prerelease",
                    hint=edit.error.stderr.strip() or None,
                )
            )
        return Ok(
            PublishedRelease(tag=bundle.tag, files=bundle.names, created=False, url=url or None)
        )


def _no_bundles() -> list[ReleaseBundle]:
    return []


@dataclass
class RecordingPublisher:
    """Publisher that records bundles instead of publishing (tests, dry runs)."""

    error: PublishError | None = None
    bundles: list[ReleaseBundle] = field(default_factory=_no_bundles)

    def publish(self, bundle: ReleaseBundle) -> Result[PublishedRelease, PublishError]:
        self.bundles.append(bundle)
        if self.error is not None:
            return Err(self.error)
        return Ok(PublishedRelease(tag=bundle.tag, files=bundle.names, created=True))

    @property
    def call_count(self) -> int:
        return len(self.bundles)
