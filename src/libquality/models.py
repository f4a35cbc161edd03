"""
Records persisted for a looked-up repository and its issues.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import InvalidInput


class IssueState(str, Enum):
    """Issue filter accepted by the GitHub issues endpoint."""

    OPEN = "open"
    CLOSED = "closed"
    ALL = "all"

    @classmethod
    def parse(cls, value: Union["IssueState", str, None]) -> "IssueState":
        if value is None or value == "":
            return cls.ALL
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(state.value for state in cls)
            raise InvalidInput(
                f"Invalid issue state '{value}'. Expected one of: {allowed}"
            ) from None


def _utcnow() -> datetime:
    # BSON dates carry milliseconds only.
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _as_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return _utcnow()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class RepositoryRecord:
    """Cached view of a GitHub repository.

    ``open_issue_count`` is the number of issues GitHub returned for
    ``issue_state``, which is only the open issues when the filter is ``open``.
    """

    owner: str
    name: str
    repository_url: str
    open_issue_count: int = 0
    issue_state: IssueState = IssueState.ALL
    registered_at: datetime = field(default_factory=_utcnow)
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        document = asdict(self)
        document.pop("id")
        document["issue_state"] = self.issue_state.value
        return document

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "RepositoryRecord":
        return cls(
            owner=document["owner"],
            name=document["name"],
            repository_url=document["repository_url"],
            open_issue_count=int(document.get("open_issue_count", 0)),
            issue_state=IssueState.parse(document.get("issue_state")),
            registered_at=_as_utc(document.get("registered_at")),
            id=str(document["_id"]) if "_id" in document else None,
        )


@dataclass
class IssueRecord:
    """Issue snapshot stored next to its repository, linked by name only."""

    repository: str
    owner: str
    github_id: int
    number: int
    title: str
    state: str
    html_url: Optional[str] = None
    author: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    comments: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    closed_at: Optional[str] = None
    is_pull_request: bool = False
    body: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)


def repository_from_search_item(
    item: Mapping[str, Any], api_base: str
) -> RepositoryRecord:
    """Build an unsaved record from one ``search/repositories`` item."""
    owner = item["owner"]["login"]
    name = item["name"]
    return RepositoryRecord(
        owner=owner,
        name=name,
        repository_url=f"{api_base}/repos/{owner}/{name}",
    )


def issue_from_payload(
    payload: Mapping[str, Any], repository: str, owner: str
) -> IssueRecord:
    user = payload.get("user") or {}
    labels = [
        label["name"] if isinstance(label, Mapping) else str(label)
        for label in payload.get("labels") or []
    ]
    return IssueRecord(
        repository=repository,
        owner=owner,
        github_id=payload["id"],
        number=payload["number"],
        title=payload.get("title") or "",
        state=payload.get("state") or "",
        html_url=payload.get("html_url"),
        author=user.get("login"),
        labels=labels,
        comments=int(payload.get("comments") or 0),
        created_at=payload.get("created_at"),
        updated_at=payload.get("updated_at"),
        closed_at=payload.get("closed_at"),
        is_pull_request="pull_request" in payload,
        body=payload.get("body"),
    )
