from datetime import datetime, timezone

import pytest

from libquality.errors import InvalidInput
from libquality.models import (
    IssueState,
    RepositoryRecord,
    issue_from_payload,
    repository_from_search_item,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, IssueState.ALL),
        ("", IssueState.ALL),
        ("open", IssueState.OPEN),
        ("CLOSED", IssueState.CLOSED),
        (IssueState.ALL, IssueState.ALL),
    ],
)
def test_issue_state_parse(value, expected):
    assert IssueState.parse(value) is expected


def test_issue_state_parse_rejects_unknown_value():
    with pytest.raises(InvalidInput, match="open, closed, all"):
        IssueState.parse("merged")


def test_repository_from_search_item_derives_api_url():
    item = {"name": "libquality", "owner": {"login": "acme"}, "stargazers_count": 3}

    record = repository_from_search_item(item, "https://api.github.com")

    assert record.owner == "acme"
    assert record.name == "libquality"
    assert record.repository_url == "https://api.github.com/repos/acme/libquality"
    assert record.open_issue_count == 0
    assert record.id is None


def test_issue_from_payload_maps_github_fields():
    payload = {
        "id": 42,
        "number": 7,
        "title": "Crash on start",
        "state": "closed",
        "html_url": "https://github.com/acme/libquality/issues/7",
        "user": {"login": "octocat"},
        "labels": [{"name": "bug"}, {"name": "p1"}],
        "comments": 4,
        "created_at": "2020-01-01T00:00:00Z",
        "closed_at": "2020-01-02T00:00:00Z",
        "pull_request": {"url": "..."},
        "body": "Steps to reproduce",
    }

    issue = issue_from_payload(payload, repository="libquality", owner="acme")

    assert issue.github_id == 42
    assert issue.number == 7
    assert issue.author == "octocat"
    assert issue.labels == ["bug", "p1"]
    assert issue.comments == 4
    assert issue.is_pull_request is True
    assert issue.updated_at is None
    assert issue.repository == "libquality"


def test_repository_document_round_trip_keeps_state_and_id():
    record = RepositoryRecord(
        owner="acme",
        name="libquality",
        repository_url="https://api.github.com/repos/acme/libquality",
        open_issue_count=5,
        issue_state=IssueState.OPEN,
    )

    document = record.to_document()
    assert "id" not in document
    assert document["issue_state"] == "open"

    document["_id"] = "abc123"
    restored = RepositoryRecord.from_document(document)
    assert restored.id == "abc123"
    assert restored.issue_state is IssueState.OPEN
    assert restored.open_issue_count == 5


def test_from_document_treats_naive_timestamps_as_utc():
    document = {
        "_id": "abc123",
        "owner": "acme",
        "name": "libquality",
        "repository_url": "https://api.github.com/repos/acme/libquality",
        "registered_at": datetime(2026, 10, 19, 14, 12, 5, 989000),
    }

    restored = RepositoryRecord.from_document(document)

    assert restored.registered_at == datetime(
        2026, 10, 19, 14, 12, 5, 989000, tzinfo=timezone.utc
    )


def test_new_records_use_millisecond_precision():
    record = RepositoryRecord(owner="acme", name="libquality", repository_url="u")

    assert record.registered_at.tzinfo is timezone.utc
    assert record.registered_at.microsecond % 1000 == 0
