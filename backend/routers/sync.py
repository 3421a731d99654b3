"""Sync router - trigger the pipeline and watch its progress."""

from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from pydantic import BaseModel

from errors import AppError, ErrorCode
from middleware.auth import verify_api_key
from middleware.rate_limit import SYNC_TRIGGER_LIMIT, limiter
from routers.dependencies import get_orchestrator, get_progress_store, get_repository, http_error
from services.channel_sync import SyncOrchestrator
from services.data_provider import DateRange
from services.progress_store import ProgressStore
from services.repository import Repository
from services.scheduler import run_sync_job

router = APIRouter(prefix="/sync", tags=["sync"])


class SyncRequest(BaseModel):
    """Optional range to sync. Defaults to the configured lookback."""
    start: date | None = None
    end: date | None = None


class SyncRunResponse(BaseModel):
    id: int
    status: str
    checkpoint: str | None = None
    started_at: datetime
    finished_at: datetime | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def from_run(cls, run) -> "SyncRunResponse":
        return cls(
            id=run.id,
            status=run.status.value,
            checkpoint=run.checkpoint,
            started_at=run.started_at,
            finished_at=run.finished_at,
            error_code=run.error_code,
            error_message=run.error_message,
        )


class SyncStatusResponse(BaseModel):
    running: bool
    progress: dict | None = None
    last_run: SyncRunResponse | None = None


@router.post("", status_code=status.HTTP_202_ACCEPTED, dependencies=[Depends(verify_api_key)])
@limiter.limit(SYNC_TRIGGER_LIMIT)
async def trigger_sync(
    request: Request,
    background_tasks: BackgroundTasks,
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
    body: SyncRequest | None = None,
):
    """Start a sync in the background."""
    if orchestrator.is_running:
        raise http_error(AppError(ErrorCode.SYNC_FAILED, "Sync already in progress"))

    date_range = None
    if body and body.start:
        end = body.end or date.today()
        if body.start > end:
            raise HTTPException(status_code=422, detail="start must not be after end")
        date_range = DateRange(start=body.start, end=end)

    background_tasks.add_task(run_sync_job, orchestrator, date_range)
    return {"status": "started"}


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
    store: Annotated[ProgressStore, Depends(get_progress_store)],
    repo: Annotated[Repository, Depends(get_repository)],
):
    """Current progress (shared store first, then this process) and the latest run."""
    progress = await store.get()
    if progress is None and orchestrator.last_progress is not None:
        progress = orchestrator.last_progress.to_dict()

    runs = await repo.list_sync_runs(limit=1)
    return SyncStatusResponse(
        running=orchestrator.is_running,
        progress=progress,
        last_run=SyncRunResponse.from_run(runs[0]) if runs else None,
    )


@router.get("/runs", response_model=list[SyncRunResponse])
async def list_runs(
    repo: Annotated[Repository, Depends(get_repository)],
    limit: int = 20,
):
    """Most recent sync runs, newest first."""
    return [SyncRunResponse.from_run(run) for run in await repo.list_sync_runs(limit)]
