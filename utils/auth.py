from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from db.database import get_db
from utils.ids import now_ms

DEVICE_HEADER = "x-device-id"
MAX_DEVICE_ID_LENGTH = 128


def ensure_device(conn, device_id: str) -> None:
    """Create the device row on first sight of an unknown id."""
    cursor = conn.cursor()
    cursor.execute(
        "INSERT OR IGNORE INTO devices (id, created_at) VALUES (?, ?)",
        (device_id, now_ms()),
    )
    if cursor.rowcount:
        conn.commit()


def require_device_id(
    x_device_id: Optional[str] = Header(default=None, alias=DEVICE_HEADER),
    conn=Depends(get_db),
) -> str:
    """Resolve the calling device from its header.

    There is no registration step: the header value itself is the identity.
    """
    device_id = (x_device_id or "").strip()
    if not device_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Missing {DEVICE_HEADER} header")
    if len(device_id) > MAX_DEVICE_ID_LENGTH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{DEVICE_HEADER} header is too long")
    ensure_device(conn, device_id)
    return device_id
