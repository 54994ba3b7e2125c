import logging

from fastapi import APIRouter, Depends

from db.database import get_db
from db.schema import SCHEMA_VERSION
from utils.auth import require_device_id
from utils.storage import compute_breakdown

logger = logging.getLogger(__name__)

router = APIRouter()

DEVICE_TABLES = ("sessions", "library", "settings", "stats")

@router.get("/storage/breakdown")
async def storage_breakdown(device_id: str = Depends(require_device_id), conn = Depends(get_db)):
    """Per-kind serialized size (KB) and counts, for the storage manager screen."""
    return {"breakdown": compute_breakdown(conn, device_id).model_dump()}

@router.delete("/all")
async def clear_all(device_id: str = Depends(require_device_id), conn = Depends(get_db)):
    """Wipe every entity for the device; the next read returns defaults."""
    cursor = conn.cursor()
    for table in DEVICE_TABLES:
        cursor.execute(f"DELETE FROM {table} WHERE device_id = ?", (device_id,))
    conn.commit()
    logger.info("Cleared all data for device %s", device_id)
    return {"ok": True}

@router.get("/health")
async def health():
    return {"status": "ok", "schemaVersion": SCHEMA_VERSION}
