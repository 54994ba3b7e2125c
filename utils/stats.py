from __future__ import annotations

import json
from datetime import date, datetime
from typing import Optional, Tuple

from pydantic import ValidationError

from models.stats import Stats, default_stats
from utils.decode import decode_json
from utils.ids import now_ms


def _local_date(ts_ms: int) -> Optional[date]:
    try:
        return datetime.fromtimestamp(ts_ms / 1000).date()
    except (OverflowError, OSError, ValueError, TypeError):
        return None


def is_new_day(last_login_ms: int, now: Optional[int] = None) -> bool:
    """True when ``last_login_ms`` falls on a different local calendar date than ``now``."""
    now = now_ms() if now is None else now
    return _local_date(last_login_ms) != _local_date(now)


def apply_daily_login(stats: Stats, now: Optional[int] = None) -> Tuple[Stats, bool]:
    """Count a new active day at most once per calendar day.

    This is the single canonical rule: the stored ``lastLogin`` calendar date
    is compared against today's, and on a mismatch ``daysActive`` grows by one
    and ``lastLogin`` moves to ``now``.
    """
    now = now_ms() if now is None else now
    if not is_new_day(stats.lastLogin, now):
        return stats, False
    updated = stats.model_copy(update={"daysActive": stats.daysActive + 1, "lastLogin": now})
    return updated, True


def load_stats(conn, device_id: str) -> Tuple[Stats, bool]:
    """Return the stored stats (or defaults) and whether a row existed."""
    cursor = conn.cursor()
    cursor.execute("SELECT json FROM stats WHERE device_id = ?", (device_id,))
    row = cursor.fetchone()
    if not row:
        return default_stats(), False
    decoded = decode_json(row["json"], {})
    if not decoded.ok:
        return default_stats(), True
    try:
        return Stats.model_validate(decoded.value), True
    except ValidationError:
        return default_stats(), True


def save_stats(conn, device_id: str, stats: Stats) -> None:
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO stats (device_id, json, updated_at) VALUES (?, ?, ?)
        ON CONFLICT(device_id) DO UPDATE SET json = excluded.json, updated_at = excluded.updated_at
        """,
        (device_id, json.dumps(stats.model_dump(mode="json")), now_ms()),
    )


def count_library_items(conn, device_id: str) -> int:
    cursor = conn.cursor()
    cursor.execute("SELECT COUNT(*) FROM library WHERE device_id = ?", (device_id,))
    return cursor.fetchone()[0] or 0


def refresh_items_saved(conn, device_id: str) -> Stats:
    """Recompute ``itemsSaved`` from the library row count and persist it."""
    stats, _ = load_stats(conn, device_id)
    stats = stats.model_copy(update={"itemsSaved": count_library_items(conn, device_id)})
    save_stats(conn, device_id, stats)
    return stats
