"""
Data access for the leaderboard service. All functions open their own
connection; database errors propagate to the caller.
"""

from datetime import datetime
from typing import List, Optional

from .db import get_db
from .schema import DailyStat, GlobalStats, UserStatsRecord
from ..util.logging import logger

# API sort names -> column names
SORT_COLUMNS = {
    "totalPastes": "total_pastes",
    "totalLinesPasted": "total_lines_pasted",
    "lastActive": "last_active",
}
DEFAULT_SORT = "totalPastes"

_USER_COLUMNS = "user_id, total_pastes, total_lines_pasted, last_active, username, os, vs_code_version"


def resolve_sort(sort: Optional[str]) -> str:
    """Map a requested sort to a valid API sort name."""
    return sort if sort in SORT_COLUMNS else DEFAULT_SORT


def _parse_ts(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _row_to_record(row) -> UserStatsRecord:
    user_id, pastes, lines, last_active, username, os_name, vs_code_version = row
    return UserStatsRecord(
        user_id=user_id,
        total_pastes=pastes,
        total_lines_pasted=lines,
        last_active=_parse_ts(last_active),
        username=username,
        os=os_name,
        vs_code_version=vs_code_version,
    )


def submit_stats(user_id: str, total_pastes: int, total_lines_pasted: int, date: Optional[str],
                 os: Optional[str] = None, vs_code_version: Optional[str] = None) -> UserStatsRecord:
    """Create or update a user's totals and the daily entry for date."""
    now = datetime.now().isoformat()

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT 1 FROM paste_stats WHERE user_id = ?", (user_id,))
        exists = cursor.fetchone() is not None

        if not exists:
            cursor.execute(
                "INSERT INTO paste_stats (user_id, total_pastes, total_lines_pasted, last_active, os, vs_code_version) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (user_id, total_pastes, total_lines_pasted, now, os, vs_code_version)
            )
        else:
            cursor.execute(
                "UPDATE paste_stats SET total_pastes = ?, total_lines_pasted = ?, last_active = ?, "
                "os = COALESCE(?, os), vs_code_version = COALESCE(?, vs_code_version) WHERE user_id = ?",
                (total_pastes, total_lines_pasted, now, os or None, vs_code_version or None, user_id)
            )

        cursor.execute(
            "UPDATE daily_stats SET pastes = ?, lines = ? WHERE user_id = ? AND date IS ?",
            (total_pastes, total_lines_pasted, user_id, date)
        )
        if cursor.rowcount == 0:
            cursor.execute("SELECT COALESCE(MAX(seq), 0) + 1 FROM daily_stats WHERE user_id = ?", (user_id,))
            seq = cursor.fetchone()[0]
            cursor.execute(
                "INSERT INTO daily_stats (user_id, date, pastes, lines, seq) VALUES (?, ?, ?, ?, ?)",
                (user_id, date, total_pastes, total_lines_pasted, seq)
            )

        conn.commit()

    logger.log_operation("leaderboard.submit", "created" if not exists else "updated", {
        "user_id": user_id,
        "total_pastes": total_pastes,
        "total_lines_pasted": total_lines_pasted
    })
    return get_user(user_id)


def get_user(user_id: str, include_daily: bool = False) -> Optional[UserStatsRecord]:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f"SELECT {_USER_COLUMNS} FROM paste_stats WHERE user_id = ?", (user_id,))
        row = cursor.fetchone()
        if not row:
            return None

        record = _row_to_record(row)
        if include_daily:
            cursor.execute(
                "SELECT date, pastes, lines FROM daily_stats WHERE user_id = ? ORDER BY seq",
                (user_id,)
            )
            record.daily_stats = [DailyStat(date=d, pastes=p, lines=l) for d, p, l in cursor.fetchall()]
        return record


def list_top_users(limit: int = 100, sort: str = DEFAULT_SORT) -> List[UserStatsRecord]:
    """Users ordered by the sort field, highest first. A limit of 0 or less means no limit."""
    column = SORT_COLUMNS[resolve_sort(sort)]
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            f"SELECT {_USER_COLUMNS} FROM paste_stats ORDER BY {column} DESC, user_id LIMIT ?",
            (limit if limit > 0 else -1,)
        )
        return [_row_to_record(row) for row in cursor.fetchall()]


def count_users_above(sort: str, record: UserStatsRecord) -> int:
    """Number of users strictly ahead of record on the sort field."""
    sort = resolve_sort(sort)
    column = SORT_COLUMNS[sort]
    value = {
        "totalPastes": record.total_pastes,
        "totalLinesPasted": record.total_lines_pasted,
        "lastActive": record.last_active.isoformat(),
    }[sort]

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f"SELECT COUNT(*) FROM paste_stats WHERE {column} > ?", (value,))
        return cursor.fetchone()[0]


def set_username(user_id: str, username: str) -> bool:
    """Set a display name. Returns False when the user does not exist."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE paste_stats SET username = ? WHERE user_id = ?", (username, user_id))
        conn.commit()
        updated = cursor.rowcount > 0

    if updated:
        logger.log_operation("leaderboard.username", "updated", {"user_id": user_id})
    return updated


def get_global_stats() -> GlobalStats:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT COUNT(*), COALESCE(SUM(total_pastes), 0), COALESCE(SUM(total_lines_pasted), 0), "
            "AVG(total_pastes), AVG(total_lines_pasted) FROM paste_stats"
        )
        users, pastes, lines, avg_pastes, avg_lines = cursor.fetchone()

    if not users:
        return GlobalStats()

    return GlobalStats(
        total_users=users,
        global_pastes=pastes,
        global_lines=lines,
        avg_pastes_per_user=avg_pastes,
        avg_lines_per_user=avg_lines,
    )


def get_user_count() -> int:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM paste_stats")
        return cursor.fetchone()[0]
