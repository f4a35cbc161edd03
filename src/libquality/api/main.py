"""
FastAPI entrypoint for the repository quality service.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import APIRouter, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .telemetry import Telemetry
from ..errors import LibQualityError
from ..logger import configure_logging, get_logger
from ..models import RepositoryRecord
from ..services import RepositoryIngestionService
from ..settings import settings
from ..version import __version__

BASE_PATH = "/libquality/v1/github"

log = get_logger(__name__)

app = FastAPI(title="LibQuality", version=__version__)
router = APIRouter(prefix=BASE_PATH)
service = RepositoryIngestionService()
telemetry = Telemetry()


class RepoResponse(BaseModel):
    id: Optional[str] = None
    owner: str
    name: str
    repository_url: str
    open_issue_count: int
    issue_state: str
    registered_at: datetime


class ErrorResponse(BaseModel):
    message: str
    error: str


class TelemetryResponse(BaseModel):
    lookup: Dict[str, Any]
    recent_events: List[Dict[str, Any]]


@app.exception_handler(LibQualityError)
async def handle_libquality_error(
    request: Request, exc: LibQualityError
) -> JSONResponse:
    status_code = (
        status.HTTP_401_UNAUTHORIZED if settings.flatten_errors else exc.status_code
    )
    return JSONResponse(status_code=status_code, content=exc.to_payload())


@app.get("/healthz")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/repo/{repo}",
    response_model=RepoResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_repo_information(repo: str, issue_state: Optional[str] = None) -> RepoResponse:
    start_time = time.time()
    try:
        outcome = service.lookup(repo, issue_state)
    except LibQualityError as exc:
        _record_lookup_telemetry(
            start_time, repo, ok=False, metadata={"error": exc.kind}
        )
        raise

    _record_lookup_telemetry(
        start_time,
        repo,
        ok=True,
        cache_hit=outcome.cache_hit,
        metadata={"issues_inserted": outcome.issues_inserted},
    )
    return _record_to_response(outcome.record)


@router.get("/repo/{repo}/issues", responses={400: {"model": ErrorResponse}})
def get_repo_issues(repo: str, issue_state: Optional[str] = None) -> str:
    return service.handle_issue_list_lookup(repo, issue_state)


app.include_router(router)


@app.get("/telemetry", response_model=TelemetryResponse)
def telemetry_snapshot() -> TelemetryResponse:
    if not settings.telemetry_enabled:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Telemetry disabled"
        )
    data = telemetry.snapshot()
    return TelemetryResponse(**data)


def _record_to_response(record: RepositoryRecord) -> RepoResponse:
    return RepoResponse(
        id=record.id,
        owner=record.owner,
        name=record.name,
        repository_url=record.repository_url,
        open_issue_count=record.open_issue_count,
        issue_state=record.issue_state.value,
        registered_at=record.registered_at,
    )


def _record_lookup_telemetry(
    start_time: float,
    repo: str,
    ok: bool,
    cache_hit: bool = False,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    if not settings.telemetry_enabled:
        return
    telemetry.record_lookup(
        repo=repo,
        duration_ms=(time.time() - start_time) * 1000.0,
        ok=ok,
        cache_hit=cache_hit,
        metadata=metadata,
    )


def run(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """CLI entrypoint to run the FastAPI server."""
    configure_logging(level=settings.log_level)
    log.info("starting_api", host=host or settings.api_host, port=port or settings.api_port)
    uvicorn.run(
        "libquality.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=False,
    )
