"""Competitors router - manage the channels tracked for momentum and topic gaps."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from middleware.auth import verify_api_key
from routers.dependencies import get_repository
from services.repository import Repository

router = APIRouter(prefix="/competitors", tags=["competitors"])


class CompetitorCreate(BaseModel):
    channel_id: str = Field(min_length=1, max_length=64)
    title: str = ""


class CompetitorResponse(BaseModel):
    id: str
    title: str
    subscriber_count: int
    added_at: datetime
    last_synced_at: datetime | None = None

    model_config = {"from_attributes": True}


@router.post(
    "",
    response_model=CompetitorResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_api_key)],
)
async def add_competitor(
    body: CompetitorCreate,
    repo: Annotated[Repository, Depends(get_repository)],
):
    """Track a competitor channel. Adding an existing channel is a no-op."""
    competitor = await repo.add_competitor(body.channel_id, body.title)
    await repo.session.commit()
    return competitor


@router.get("", response_model=list[CompetitorResponse])
async def list_competitors(repo: Annotated[Repository, Depends(get_repository)]):
    return await repo.list_competitors()
