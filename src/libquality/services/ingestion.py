"""
Repository lookup workflow: cache check, GitHub fetch, persistence.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from ..errors import (
    InvalidInput,
    LibQualityError,
    NotFound,
    PersistenceFailure,
    UpstreamFailure,
)
from ..github import GitHubClient
from ..logger import get_logger
from ..models import (
    IssueRecord,
    IssueState,
    RepositoryRecord,
    issue_from_payload,
    repository_from_search_item,
)
from ..settings import settings
from ..storage import MongoRepositoryStore

log = get_logger(__name__)

ISSUE_LIST_PLACEHOLDER = "Issue listing is not available yet"


@dataclass
class LookupOutcome:
    record: RepositoryRecord
    cache_hit: bool
    issues_inserted: int = 0


class RepositorySource(Protocol):
    """What the workflow needs from the GitHub side."""

    def search_repositories(self, query: str) -> List[Dict[str, Any]]:
        ...

    def list_issues(
        self, owner: str, repo: str, state: Union[IssueState, str] = IssueState.ALL
    ) -> List[Dict[str, Any]]:
        ...


class RepositoryStore(Protocol):
    """What the workflow needs from the document store."""

    def find_repository(self, name: str) -> Optional[RepositoryRecord]:
        ...

    def save_repository(self, record: RepositoryRecord) -> RepositoryRecord:
        ...

    def insert_issues(self, records: Sequence[IssueRecord]) -> int:
        ...


def _require_name(repository_name: Optional[str]) -> str:
    name = (repository_name or "").strip()
    if not name:
        raise InvalidInput("Repository name is invalid")
    return name


class RepositoryIngestionService:
    """Looks a repository up in the cache, fetching and storing it on a miss."""

    def __init__(
        self,
        github_client: Optional[RepositorySource] = None,
        store: Optional[RepositoryStore] = None,
        api_base: Optional[str] = None,
    ) -> None:
        self.github_client = github_client or GitHubClient()
        self.store = store or MongoRepositoryStore()
        self.api_base = (api_base or settings.github_api_base).rstrip("/")

    def handle_repository_lookup(
        self,
        repository_name: Optional[str],
        issue_state: Union[IssueState, str, None] = IssueState.ALL,
    ) -> RepositoryRecord:
        """Return the cached record for ``repository_name``, creating it if absent."""
        return self.lookup(repository_name, issue_state).record

    def lookup(
        self,
        repository_name: Optional[str],
        issue_state: Union[IssueState, str, None] = IssueState.ALL,
    ) -> LookupOutcome:
        """Run the lookup and report whether it was served from the cache.

        Raises one of the ``LibQualityError`` variants; nothing written before
        a failure is rolled back.
        """
        try:
            name = _require_name(repository_name)
            state = IssueState.parse(issue_state)
            log.debug("repository_lookup_started", repo=name, issue_state=state.value)
            return self._lookup(name, state)
        except LibQualityError as exc:
            log.error(
                "repository_lookup_failed",
                repo=repository_name,
                error=exc.kind,
                message=exc.message,
            )
            raise
        except Exception as exc:
            log.exception("repository_lookup_failed", repo=repository_name, error="error")
            raise LibQualityError(
                f"Repository lookup failed: {str(exc) or exc.__class__.__name__}"
            ) from exc

    def _lookup(self, name: str, state: IssueState) -> LookupOutcome:
        cached = self._call_store(self.store.find_repository, name)
        if cached is not None:
            log.debug("repository_cache_hit", repo=name, id=cached.id)
            return LookupOutcome(record=cached, cache_hit=True)

        log.debug("fetching_repository_information", repo=name)
        items = self._call_github(self.github_client.search_repositories, name)
        # GitHub ranks results by relevance; the first exact match wins.
        try:
            match = next((item for item in items if item.get("name") == name), None)
            if match is None:
                raise NotFound(
                    "Requested repository is not classified as a relevant project"
                )
            record = repository_from_search_item(match, self.api_base)
        except (AttributeError, KeyError, TypeError) as exc:
            raise UpstreamFailure(f"Malformed repository item from GitHub: {exc}") from exc
        record.issue_state = state
        log.debug("repository_prepared", repo=record.name, owner=record.owner)

        log.debug("fetching_repository_issues", repo=record.name, issue_state=state.value)
        payloads = self._call_github(
            self.github_client.list_issues, record.owner, record.name, state
        )
        try:
            issues = [
                issue_from_payload(payload, repository=record.name, owner=record.owner)
                for payload in payloads
            ]
        except (AttributeError, KeyError, TypeError) as exc:
            raise UpstreamFailure(f"Malformed issue payload from GitHub: {exc}") from exc
        log.debug("repository_issues_fetched", repo=record.name, count=len(issues))

        record.open_issue_count = len(issues)
        saved = self._call_store(self.store.save_repository, record)
        inserted = self._call_store(self.store.insert_issues, issues)
        log.info(
            "repository_registered",
            repo=saved.name,
            owner=saved.owner,
            issue_state=state.value,
            issues=inserted,
        )
        return LookupOutcome(record=saved, cache_hit=False, issues_inserted=inserted)

    def handle_issue_list_lookup(
        self,
        repository_name: Optional[str],
        issue_state: Union[IssueState, str, None] = IssueState.ALL,
    ) -> str:
        # Placeholder endpoint; only validates its arguments.
        try:
            name = _require_name(repository_name)
            IssueState.parse(issue_state)
        except InvalidInput as exc:
            log.error("issue_list_lookup_failed", repo=repository_name, message=exc.message)
            raise
        log.debug("issue_list_lookup_placeholder", repo=name)
        return ISSUE_LIST_PLACEHOLDER

    @staticmethod
    def _call_github(func, *args):
        try:
            return func(*args)
        except LibQualityError:
            raise
        except Exception as exc:
            raise UpstreamFailure(str(exc) or exc.__class__.__name__) from exc

    @staticmethod
    def _call_store(func, *args):
        try:
            return func(*args)
        except LibQualityError:
            raise
        except Exception as exc:
            raise PersistenceFailure(str(exc) or exc.__class__.__name__) from exc
