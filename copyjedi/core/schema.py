"""Records stored by the leaderboard service."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class DailyStat:
    date: Optional[str]
    pastes: int
    lines: int


@dataclass
class UserStatsRecord:
    user_id: str
    total_pastes: int
    total_lines_pasted: int
    last_active: datetime
    username: Optional[str] = None
    os: Optional[str] = None
    vs_code_version: Optional[str] = None
    daily_stats: List[DailyStat] = field(default_factory=list)
    rank: Optional[int] = None


@dataclass
class GlobalStats:
    total_users: int = 0
    global_pastes: int = 0
    global_lines: int = 0
    avg_pastes_per_user: float = 0.0
    avg_lines_per_user: float = 0.0
