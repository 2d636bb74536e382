"""
Request and response models for the leaderboard API. Wire names are
camelCase to match what editor clients send.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SubmitRequest(_CamelModel):
    # Required fields are checked by the endpoint so it can answer 400
    user_id: Optional[str] = Field(default=None, alias="userId")
    total_pastes: Optional[int] = Field(default=None, alias="totalPastes", ge=0)
    total_lines_pasted: Optional[int] = Field(default=None, alias="totalLinesPasted", ge=0)
    date: Optional[str] = None
    os: Optional[str] = None
    vs_code_version: Optional[str] = Field(default=None, alias="vsCodeVersion")

    def missing_required(self) -> bool:
        return not self.user_id or self.total_pastes is None or self.total_lines_pasted is None


class UsernameRequest(_CamelModel):
    username: Optional[str] = None

    @field_validator('username')
    @classmethod
    def strip_username(cls, v):
        return v.strip() if v is not None else v


class SuccessResponse(BaseModel):
    success: bool


class HealthResponse(_CamelModel):
    status: str
    version: str
    db_health: bool = Field(alias="dbHealth")
    user_count: int = Field(alias="userCount")


class LeaderboardEntry(_CamelModel):
    user_id: str = Field(alias="userId")
    total_pastes: int = Field(alias="totalPastes")
    total_lines_pasted: int = Field(alias="totalLinesPasted")
    last_active: datetime = Field(alias="lastActive")
    username: Optional[str] = None
    is_current_user: Optional[bool] = Field(default=None, alias="isCurrentUser")
    rank: Optional[int] = None


class DailyStatResponse(BaseModel):
    date: Optional[str] = None
    pastes: int
    lines: int


class UserStatsResponse(_CamelModel):
    user_id: str = Field(alias="userId")
    total_pastes: int = Field(alias="totalPastes")
    total_lines_pasted: int = Field(alias="totalLinesPasted")
    daily_stats: List[DailyStatResponse] = Field(default_factory=list, alias="dailyStats")
    last_active: datetime = Field(alias="lastActive")
    username: Optional[str] = None


class GlobalStatsResponse(_CamelModel):
    total_users: int = Field(alias="totalUsers")
    global_pastes: int = Field(alias="globalPastes")
    global_lines: int = Field(alias="globalLines")
    avg_pastes_per_user: float = Field(alias="avgPastesPerUser")
    avg_lines_per_user: float = Field(alias="avgLinesPerUser")
