import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from db.database import get_db
from models.library import LibraryCreateRequest, LibraryItem
from utils.auth import require_device_id
from utils.decode import decode_json
from utils.ids import new_id, now_ms
from utils.stats import refresh_items_saved

logger = logging.getLogger(__name__)

router = APIRouter()

INLINE_IMAGE_PREFIX = "data:image"

def _optional_list(raw):
    decoded = decode_json(raw, [])
    return decoded.value if decoded.ok else None

def row_to_item(row) -> LibraryItem:
    return LibraryItem(
        id=row["id"],
        type=row["type"],
        title=row["title"] or "",
        content=row["content"] or "",
        category=row["category"],
        thumbnail=row["thumbnail"] or None,
        funFact=row["fun_fact"] or None,
        relatedQuestions=_optional_list(row["related_json"]),
        tags=_optional_list(row["tags_json"]),
        date=row["date"],
    )

def list_items(conn, device_id: str) -> List[dict]:
    cursor = conn.cursor()
    cursor.execute(
        "SELECT * FROM library WHERE device_id = ? ORDER BY date DESC, rowid DESC",
        (device_id,),
    )
    return [row_to_item(row).model_dump(mode="json", exclude_none=True) for row in cursor.fetchall()]

@router.get("")
async def get_library(device_id: str = Depends(require_device_id), conn = Depends(get_db)):
    """List library items, newest first."""
    return {"items": list_items(conn, device_id)}

@router.post("")
async def create_item(
    payload: Optional[LibraryCreateRequest] = None,
    device_id: str = Depends(require_device_id),
    conn = Depends(get_db),
):
    draft = (payload or LibraryCreateRequest()).item
    item = LibraryItem(id=new_id(), date=now_ms(), **draft.model_dump())
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO library (id, device_id, type, title, content, category, thumbnail, fun_fact, related_json, tags_json, date)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            item.id,
            device_id,
            item.type.value,
            item.title,
            item.content,
            item.category,
            item.thumbnail,
            item.funFact,
            json.dumps(item.relatedQuestions) if item.relatedQuestions is not None else None,
            json.dumps(item.tags) if item.tags is not None else None,
            item.date,
        ),
    )
    refresh_items_saved(conn, device_id)
    conn.commit()
    return {"item": item.model_dump(mode="json", exclude_none=True)}

@router.post("/optimize-images")
async def optimize_images(device_id: str = Depends(require_device_id), conn = Depends(get_db)):
    """Drop inline (data URL) thumbnails to reclaim space."""
    cursor = conn.cursor()
    cursor.execute(
        "UPDATE library SET thumbnail = NULL WHERE device_id = ? AND thumbnail LIKE ?",
        (device_id, INLINE_IMAGE_PREFIX + "%"),
    )
    optimized = cursor.rowcount or 0
    conn.commit()
    if optimized:
        logger.info("Stripped %d inline thumbnails for device %s", optimized, device_id)
    return {"optimized": optimized}

@router.delete("/{item_id}")
async def delete_item(item_id: str, device_id: str = Depends(require_device_id), conn = Depends(get_db)):
    """Delete one item and return what remains; unknown ids are a no-op."""
    cursor = conn.cursor()
    cursor.execute("DELETE FROM library WHERE id = ? AND device_id = ?", (item_id, device_id))
    refresh_items_saved(conn, device_id)
    conn.commit()
    return {"items": list_items(conn, device_id)}
