"""Shared router dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from errors import AppError, ErrorCode
from services.channel_sync import SyncOrchestrator
from services.progress_store import ProgressStore
from services.repository import Repository

ERROR_STATUS = {
    ErrorCode.SYNC_FAILED: 409,
    ErrorCode.AUTH_ERROR: 401,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.NOT_FOUND: 404,
}


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.orchestrator


def get_progress_store(request: Request) -> ProgressStore:
    return request.app.state.progress_store


async def get_repository(db: Annotated[AsyncSession, Depends(get_db)]) -> Repository:
    return Repository(db)


def http_error(error: AppError) -> HTTPException:
    """Translate an AppError into an HTTP response."""
    return HTTPException(status_code=ERROR_STATUS.get(error.code, 502), detail=error.to_dict())
