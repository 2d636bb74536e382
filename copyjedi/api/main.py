"""
Leaderboard HTTP service: accepts cumulative paste totals from clients and
serves the leaderboard, per-user stats and global aggregates.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .schemas import (
    SubmitRequest,
    UsernameRequest,
    SuccessResponse,
    HealthResponse,
    LeaderboardEntry,
    UserStatsResponse,
    DailyStatResponse,
    GlobalStatsResponse,
)
from ..core import dao
from ..core.db import health_check, init_db
from ..core.config import VERSION, debug_enabled
from ..core.schema import UserStatsRecord
from ..util.logging import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"CopyJedi leaderboard API {VERSION} ready")
    yield


app = FastAPI(
    title="CopyJedi Leaderboard API",
    version=VERSION,
    description="Per-user paste counters and a global leaderboard",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _entry(record: UserStatsRecord, current_user: Optional[str] = None, **extra) -> LeaderboardEntry:
    fields = dict(
        user_id=record.user_id,
        total_pastes=record.total_pastes,
        total_lines_pasted=record.total_lines_pasted,
        last_active=record.last_active,
        username=record.username,
    )
    if current_user:
        fields["is_current_user"] = record.user_id == current_user
    fields.update(extra)
    return LeaderboardEntry(**fields)


@app.get("/api/health", response_model=HealthResponse)
def health_check_endpoint():
    """Liveness probe used by clients before submitting."""
    db_health = health_check()
    user_count = dao.get_user_count() if db_health else 0

    return HealthResponse(
        status="ok" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        user_count=user_count
    )


@app.post("/api/submit", response_model=SuccessResponse)
def submit_stats_endpoint(request: SubmitRequest):
    """Store a client's cumulative totals and today's daily entry."""
    if request.missing_required():
        return _error(400, "Missing required fields")

    try:
        dao.submit_stats(
            user_id=request.user_id,
            total_pastes=request.total_pastes,
            total_lines_pasted=request.total_lines_pasted,
            date=request.date,
            os=request.os,
            vs_code_version=request.vs_code_version,
        )
    except Exception as e:
        logger.log_api_error("submit", e)
        return _error(500, "Server error")

    return SuccessResponse(success=True)


@app.get("/api/leaderboard")
def leaderboard_endpoint(limit: int = 100, sort: str = dao.DEFAULT_SORT, userId: Optional[str] = None):
    """
    Top users by sort field. When userId is given every entry carries
    isCurrentUser, and a user outside the page is appended with their rank.
    """
    sort = dao.resolve_sort(sort)

    try:
        records = dao.list_top_users(limit=limit, sort=sort)
        entries = [_entry(r, userId) for r in records]

        if userId and not any(r.user_id == userId for r in records):
            user = dao.get_user(userId)
            if user:
                rank = dao.count_users_above(sort, user) + 1
                entries.append(_entry(user, userId, rank=rank))
    except Exception as e:
        logger.log_api_error("leaderboard", e)
        return _error(500, "Server error")

    return JSONResponse(content=[e.model_dump(by_alias=True, mode="json", exclude_unset=True) for e in entries])


@app.get("/api/user/{user_id}", response_model=UserStatsResponse)
def get_user_endpoint(user_id: str):
    """Totals and daily history for one user."""
    try:
        user = dao.get_user(user_id, include_daily=True)
    except Exception as e:
        logger.log_api_error("user", e)
        return _error(500, "Server error")

    if not user:
        return _error(404, "User not found")

    return UserStatsResponse(
        user_id=user.user_id,
        total_pastes=user.total_pastes,
        total_lines_pasted=user.total_lines_pasted,
        daily_stats=[DailyStatResponse(date=d.date, pastes=d.pastes, lines=d.lines) for d in user.daily_stats],
        last_active=user.last_active,
        username=user.username,
    )


@app.post("/api/user/{user_id}/username", response_model=SuccessResponse)
def set_username_endpoint(user_id: str, request: UsernameRequest):
    if not request.username:
        return _error(400, "Username is required")

    try:
        updated = dao.set_username(user_id, request.username)
    except Exception as e:
        logger.log_api_error("username", e)
        return _error(500, "Server error")

    if not updated:
        return _error(404, "User not found")

    return SuccessResponse(success=True)


@app.get("/api/stats", response_model=GlobalStatsResponse)
def global_stats_endpoint():
    """Aggregates across all users; zeros when nobody has submitted yet."""
    try:
        stats = dao.get_global_stats()
    except Exception as e:
        logger.log_api_error("stats", e)
        return _error(500, "Server error")

    return GlobalStatsResponse(
        total_users=stats.total_users,
        global_pastes=stats.global_pastes,
        global_lines=stats.global_lines,
        avg_pastes_per_user=stats.avg_pastes_per_user,
        avg_lines_per_user=stats.avg_lines_per_user,
    )
