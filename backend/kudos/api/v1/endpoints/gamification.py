"""Points, streak and achievement endpoints"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from kudos.database import get_db
from kudos.core.deps import get_current_user
from kudos.domain.entities import User
from kudos.models.api import (
    AchievementResponse,
    PointCorrectionRequest,
    PointEntryResponse,
    PointsLedgerResponse,
    StatsResponse,
    StreakResponse,
)
from kudos.services.gamification import GamificationService

router = APIRouter()


@router.get("/points", response_model=PointsLedgerResponse)
async def get_points(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Points ledger, newest first, with the running total"""
    service = GamificationService(db)
    entries = await service.list_points(current_user.id, limit=limit, offset=offset)
    return PointsLedgerResponse(
        total=await service.total_points(current_user.id),
        entries=[PointEntryResponse.model_validate(entry) for entry in entries],
    )


@router.post("/points", response_model=PointEntryResponse, status_code=201)
async def record_point_correction(
    request: PointCorrectionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Append an offsetting entry; the ledger itself is never edited"""
    entry = await GamificationService(db).record_correction(
        current_user.id, request.amount, request.reason, request.task_id
    )
    return PointEntryResponse.model_validate(entry)


@router.get("/streak", response_model=StreakResponse)
async def get_streak(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    streak = await GamificationService(db).get_streak(current_user.id)
    return StreakResponse.model_validate(streak)


@router.get("/achievements", response_model=List[AchievementResponse])
async def list_achievements(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    achievements = await GamificationService(db).list_achievements(current_user.id)
    return [AchievementResponse.model_validate(achievement) for achievement in achievements]


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    stats = await GamificationService(db).stats(current_user.id)
    return StatsResponse.model_validate(stats, from_attributes=True)
