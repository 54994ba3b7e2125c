import json
from typing import Any

from models.storage import StorageBreakdown


def serialized_size(value: Any) -> int:
    """Byte size of ``value`` as compact UTF-8 JSON."""
    return len(json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8"))


def to_kb(size: int) -> str:
    return f"{size / 1024:.1f}"


def compute_breakdown(conn, device_id: str) -> StorageBreakdown:
    """Storage accounting for display: raw row payloads per entity kind."""
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM library WHERE device_id = ?", (device_id,))
    library_rows = [dict(row) for row in cursor.fetchall()]
    cursor.execute("SELECT * FROM sessions WHERE device_id = ?", (device_id,))
    session_rows = [dict(row) for row in cursor.fetchall()]
    cursor.execute("SELECT json FROM settings WHERE device_id = ?", (device_id,))
    settings_row = cursor.fetchone()
    cursor.execute("SELECT json FROM stats WHERE device_id = ?", (device_id,))
    stats_row = cursor.fetchone()

    library_bytes = serialized_size(library_rows)
    sessions_bytes = serialized_size(session_rows)
    system_text = (settings_row["json"] if settings_row and settings_row["json"] else "") + (
        stats_row["json"] if stats_row and stats_row["json"] else ""
    )
    system_bytes = len(system_text.encode("utf-8"))

    return StorageBreakdown(
        librarySize=to_kb(library_bytes),
        libraryCount=len(library_rows),
        sessionsSize=to_kb(sessions_bytes),
        sessionsCount=len(session_rows),
        systemSize=to_kb(system_bytes),
        totalSize=to_kb(library_bytes + sessions_bytes + system_bytes),
    )
