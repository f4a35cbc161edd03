from typing import List

import pytest

from libquality.errors import (
    InvalidInput,
    LibQualityError,
    NotFound,
    PersistenceFailure,
    UpstreamFailure,
)
from libquality.models import IssueState, RepositoryRecord
from libquality.services import ISSUE_LIST_PLACEHOLDER, RepositoryIngestionService


class StubGitHub:
    def __init__(self, items=None, issues=None) -> None:
        self.items = items or []
        self.issues = issues or []
        self.calls: List[tuple] = []

    def search_repositories(self, query):
        self.calls.append(("search", query))
        return self.items

    def list_issues(self, owner, repo, state=IssueState.ALL):
        self.calls.append(("issues", owner, repo, state))
        return self.issues


class StubStore:
    def __init__(self, existing=None) -> None:
        self.records = {record.name: record for record in (existing or [])}
        self.saved: List[RepositoryRecord] = []
        self.issues = []
        self.calls: List[str] = []

    def find_repository(self, name):
        self.calls.append("find")
        return self.records.get(name)

    def save_repository(self, record):
        self.calls.append("save")
        record.id = f"id-{len(self.saved) + 1}"
        self.saved.append(record)
        return record

    def insert_issues(self, records):
        self.calls.append("insert_issues")
        self.issues.extend(records)
        return len(records)


def _item(name, owner):
    return {"name": name, "owner": {"login": owner}, "full_name": f"{owner}/{name}"}


def _issue(number, state="open"):
    return {
        "id": 1000 + number,
        "number": number,
        "title": f"Issue {number}",
        "state": state,
        "user": {"login": "reporter"},
        "labels": [{"name": "bug"}],
    }


def test_fetches_and_persists_repository_on_cache_miss():
    github = StubGitHub(
        items=[
            _item("libquality-fork", "someone"),
            _item("libquality", "acme"),
            _item("libquality", "other"),
        ],
        issues=[_issue(1), _issue(2), _issue(3, state="closed")],
    )
    store = StubStore()
    service = RepositoryIngestionService(
        github_client=github, store=store, api_base="https://api.github.com"
    )

    record = service.handle_repository_lookup("libquality")

    assert record.owner == "acme"
    assert record.name == "libquality"
    assert record.open_issue_count == 3
    assert record.issue_state is IssueState.ALL
    assert record.repository_url == "https://api.github.com/repos/acme/libquality"
    assert record.id == "id-1"
    assert store.saved == [record]
    assert [issue.number for issue in store.issues] == [1, 2, 3]
    assert all(issue.repository == "libquality" for issue in store.issues)
    assert store.calls == ["find", "save", "insert_issues"]
    assert github.calls == [
        ("search", "libquality"),
        ("issues", "acme", "libquality", IssueState.ALL),
    ]


def test_cached_repository_short_circuits_external_calls():
    cached = RepositoryRecord(
        owner="acme",
        name="libquality",
        repository_url="https://api.github.com/repos/acme/libquality",
        open_issue_count=7,
        id="stored",
    )
    github = StubGitHub(items=[_item("libquality", "acme")])
    store = StubStore(existing=[cached])
    service = RepositoryIngestionService(github_client=github, store=store)

    outcome = service.lookup("libquality", "open")

    assert outcome.cache_hit is True
    assert outcome.record is cached
    assert github.calls == []
    assert store.calls == ["find"]


@pytest.mark.parametrize("name", ["", "   ", None])
def test_empty_name_is_rejected_before_any_access(name):
    github = StubGitHub()
    store = StubStore()
    service = RepositoryIngestionService(github_client=github, store=store)

    with pytest.raises(InvalidInput):
        service.handle_repository_lookup(name)

    assert github.calls == []
    assert store.calls == []


def test_unknown_issue_state_is_invalid_input():
    store = StubStore()
    service = RepositoryIngestionService(github_client=StubGitHub(), store=store)

    with pytest.raises(InvalidInput):
        service.handle_repository_lookup("libquality", "pending")
    assert store.calls == []


def test_no_exact_name_match_is_not_found():
    github = StubGitHub(items=[_item("libquality-js", "acme"), _item("LibQuality", "x")])
    store = StubStore()
    service = RepositoryIngestionService(github_client=github, store=store)

    with pytest.raises(NotFound):
        service.handle_repository_lookup("libquality")
    assert store.saved == []


def test_count_follows_requested_filter():
    github = StubGitHub(items=[_item("libquality", "acme")], issues=[_issue(4)])
    store = StubStore()
    service = RepositoryIngestionService(github_client=github, store=store)

    record = service.handle_repository_lookup("libquality", IssueState.CLOSED)

    assert record.open_issue_count == 1
    assert record.issue_state is IssueState.CLOSED
    assert github.calls[-1] == ("issues", "acme", "libquality", IssueState.CLOSED)


def test_repository_without_issues_is_still_registered():
    github = StubGitHub(items=[_item("libquality", "acme")], issues=[])
    store = StubStore()
    service = RepositoryIngestionService(github_client=github, store=store)

    outcome = service.lookup("libquality")

    assert outcome.record.open_issue_count == 0
    assert outcome.issues_inserted == 0
    assert store.calls == ["find", "save", "insert_issues"]


def test_unexpected_github_error_becomes_upstream_failure():
    class BrokenGitHub(StubGitHub):
        def search_repositories(self, query):
            raise RuntimeError("socket closed")

    service = RepositoryIngestionService(github_client=BrokenGitHub(), store=StubStore())

    with pytest.raises(UpstreamFailure, match="socket closed"):
        service.handle_repository_lookup("libquality")


def test_issue_write_failure_keeps_saved_repository():
    class FailingIssueStore(StubStore):
        def insert_issues(self, records):
            raise RuntimeError("write concern error")

    github = StubGitHub(items=[_item("libquality", "acme")], issues=[_issue(1)])
    store = FailingIssueStore()
    service = RepositoryIngestionService(github_client=github, store=store)

    with pytest.raises(PersistenceFailure, match="write concern error"):
        service.handle_repository_lookup("libquality")
    assert len(store.saved) == 1


def test_issue_list_lookup_is_a_placeholder():
    github = StubGitHub()
    store = StubStore()
    service = RepositoryIngestionService(github_client=github, store=store)

    assert service.handle_issue_list_lookup("libquality") == ISSUE_LIST_PLACEHOLDER
    with pytest.raises(InvalidInput):
        service.handle_issue_list_lookup("")
    assert github.calls == [] and store.calls == []


def test_malformed_search_item_is_upstream_failure():
    github = StubGitHub(items=[None, _item("libquality", "acme")])
    store = StubStore()
    service = RepositoryIngestionService(github_client=github, store=store)

    with pytest.raises(UpstreamFailure, match="Malformed repository item"):
        service.handle_repository_lookup("libquality")
    assert store.saved == []


def test_malformed_issue_payload_is_upstream_failure():
    github = StubGitHub(items=[_item("libquality", "acme")], issues=["not-an-issue"])
    store = StubStore()
    service = RepositoryIngestionService(github_client=github, store=store)

    with pytest.raises(UpstreamFailure, match="Malformed issue payload"):
        service.handle_repository_lookup("libquality")
    assert store.saved == []


def test_unexpected_failure_is_wrapped_with_its_message():
    class OddStore(StubStore):
        def find_repository(self, name):
            return object()

    service = RepositoryIngestionService(github_client=StubGitHub(), store=OddStore())

    with pytest.raises(LibQualityError, match="Repository lookup failed") as excinfo:
        service.handle_repository_lookup("libquality")
    assert excinfo.value.to_payload()["error"] == "error"
    assert isinstance(excinfo.value.__cause__, AttributeError)
