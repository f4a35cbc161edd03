"""
GitHub REST client used by the repository lookup flow.

Only the first page of each listing is read.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Union

import requests

from ..errors import UpstreamFailure
from ..logger import get_logger
from ..models import IssueState
from ..settings import settings

log = get_logger(__name__)

_ACCEPT = "application/vnd.github+json"


class GitHubClient:
    """Thin wrapper around the repository search and issue endpoints."""

    def __init__(
        self,
        token: Optional[str] = None,
        api_base: Optional[str] = None,
        per_page: Optional[int] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if token is None:
            token = settings.github_token or os.getenv("GITHUB_TOKEN")
        self.token = token
        self.api_base = (api_base or settings.github_api_base).rstrip("/")
        self.per_page = per_page or settings.github_per_page
        self.timeout = timeout or settings.github_request_timeout
        self.session = session or requests.Session()
        self.headers = {"Accept": _ACCEPT}
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"

    def _get(self, path: str, params: Dict[str, Any]) -> Any:
        url = f"{self.api_base}{path}"
        log.debug("github_request", url=url, params=params)
        try:
            response = self.session.get(
                url, params=params, headers=self.headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise UpstreamFailure(f"GitHub request failed: {exc}") from exc

        if response.status_code >= 400:
            detail = _error_message(response)
            log.warning(
                "github_error_response",
                url=url,
                status=response.status_code,
                detail=detail,
            )
            raise UpstreamFailure(
                f"GitHub returned HTTP {response.status_code}: {detail}",
                upstream_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamFailure(
                "GitHub returned a response that is not JSON",
                upstream_status=response.status_code,
            ) from exc

    def search_repositories(self, query: str) -> List[Dict[str, Any]]:
        """Return the first page of repositories whose name matches ``query``."""
        data = self._get(
            "/search/repositories",
            {"q": f"{query} in:name", "per_page": self.per_page},
        )
        if not isinstance(data, dict):
            raise UpstreamFailure("Unexpected repository search payload from GitHub")
        items = data.get("items") or []
        log.debug(
            "github_search_completed",
            query=query,
            total_count=data.get("total_count"),
            returned=len(items),
        )
        return items

    def list_issues(
        self, owner: str, repo: str, state: Union[IssueState, str] = IssueState.ALL
    ) -> List[Dict[str, Any]]:
        """Return the first page of issues for ``owner/repo`` in ``state``."""
        issue_state = IssueState.parse(state)
        data = self._get(
            f"/repos/{owner}/{repo}/issues",
            {"state": issue_state.value, "per_page": self.per_page},
        )
        if not isinstance(data, list):
            raise UpstreamFailure("Unexpected issue list payload from GitHub")
        log.debug(
            "github_issues_fetched",
            owner=owner,
            repo=repo,
            state=issue_state.value,
            returned=len(data),
        )
        return data

    def close(self) -> None:
        self.session.close()


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or response.reason or "unknown error"
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason or "unknown error"
