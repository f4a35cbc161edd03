"""
Error taxonomy shared by the service, its collaborators and the HTTP layer.

Every failure the lookup flow can produce is one of the tagged variants below.
The API maps ``status_code`` straight onto the response.
"""

from __future__ import annotations

from typing import ClassVar, Dict, Optional


class LibQualityError(Exception):
    """Base class for all expected failures."""

    kind: ClassVar[str] = "error"
    status_code: ClassVar[int] = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, str]:
        return {"message": self.message, "error": self.kind}


class InvalidInput(LibQualityError):
    """The request itself is unusable (missing name, unknown issue state)."""

    kind = "invalid_input"
    status_code = 400


class NotFound(LibQualityError):
    """GitHub returned no repository whose name matches exactly."""

    kind = "not_found"
    status_code = 404


class UpstreamFailure(LibQualityError):
    """The GitHub API failed or answered with something unusable."""

    kind = "upstream_failure"
    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class PersistenceFailure(LibQualityError):
    """The document store rejected a read or a write."""

    kind = "persistence_failure"
    status_code = 503


__all__ = [
    "InvalidInput",
    "LibQualityError",
    "NotFound",
    "PersistenceFailure",
    "UpstreamFailure",
]
