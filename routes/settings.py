import json
import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError

from db.database import get_db
from models.settings import Settings, default_settings
from utils.auth import require_device_id
from utils.decode import decode_json
from utils.ids import now_ms

logger = logging.getLogger(__name__)

router = APIRouter()

def load_settings(conn, device_id: str) -> Tuple[Settings, bool]:
    """Stored settings merged over defaults; malformed rows decode to defaults."""
    cursor = conn.cursor()
    cursor.execute("SELECT json FROM settings WHERE device_id = ?", (device_id,))
    row = cursor.fetchone()
    if not row:
        return default_settings(), False
    decoded = decode_json(row["json"], {})
    if not decoded.ok:
        logger.warning("Settings for device %s unreadable (%s); using defaults", device_id, decoded.reason)
        return default_settings(), True
    try:
        return Settings.merged(decoded.value), True
    except ValidationError:
        logger.warning("Settings for device %s failed validation; using defaults", device_id)
        return default_settings(), True

def store_settings(conn, device_id: str, settings: Settings) -> None:
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO settings (device_id, json, updated_at) VALUES (?, ?, ?)
        ON CONFLICT(device_id) DO UPDATE SET json = excluded.json, updated_at = excluded.updated_at
        """,
        (device_id, json.dumps(settings.model_dump(mode="json")), now_ms()),
    )

@router.get("")
async def get_settings(device_id: str = Depends(require_device_id), conn = Depends(get_db)):
    """Fetch settings, creating the default row on first access."""
    settings, exists = load_settings(conn, device_id)
    if not exists:
        store_settings(conn, device_id, settings)
        conn.commit()
    return {"settings": settings.model_dump(mode="json")}

@router.put("")
async def save_settings(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    device_id: str = Depends(require_device_id),
    conn = Depends(get_db),
):
    """Replace-merge settings; accepts ``{"settings": {...}}`` or the bare object."""
    payload = payload or {}
    partial = payload.get("settings") if isinstance(payload.get("settings"), dict) else payload
    try:
        merged = Settings.merged(partial)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors(include_url=False, include_context=False))
    store_settings(conn, device_id, merged)
    conn.commit()
    return {"settings": merged.model_dump(mode="json")}
