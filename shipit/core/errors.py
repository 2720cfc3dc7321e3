"""Error codes for CLI exit status.

Each pipeline failure class maps to one stable process exit code, so a CI job
log shows which stage stopped the release.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success
    - 1: User error (bad trigger, missing tag, invalid config or matrix)
    - 2: Environment error (provisioning failed)
    - 3: Build error (compiler failed, output missing)
    - 4: Artifact error (upload failed, artifact missing)
    - 5: Publish error (release API rejected the call)
    - 6: I/O error (staging files failed)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    ARTIFACT_ERROR = 4
    PUBLISH_ERROR = 5
    IO_ERROR = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
