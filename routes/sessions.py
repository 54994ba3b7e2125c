import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import ValidationError

from db.database import get_db
from models.session import (
    ChatMessage,
    ChatSession,
    SessionCreate,
    SessionUpdate,
    cap_messages,
    session_preview,
    session_title,
)
from utils.auth import require_device_id
from utils.decode import decode_json
from utils.ids import new_id, now_ms

logger = logging.getLogger(__name__)

router = APIRouter()

def _decode_messages(raw) -> List[ChatMessage]:
    decoded = decode_json(raw, [])
    try:
        return [ChatMessage.model_validate(message) for message in decoded.value]
    except ValidationError:
        logger.warning("Dropping unreadable message list")
        return []

def row_to_session(row) -> ChatSession:
    return ChatSession(
        id=row["id"],
        title=row["title"] or "",
        preview=row["preview"] or "",
        updatedAt=row["updated_at"],
        messages=_decode_messages(row["messages_json"]),
    )

def list_sessions(conn, device_id: str) -> List[dict]:
    cursor = conn.cursor()
    cursor.execute(
        "SELECT * FROM sessions WHERE device_id = ? ORDER BY updated_at DESC, rowid DESC",
        (device_id,),
    )
    return [row_to_session(row).model_dump(mode="json", exclude_none=True) for row in cursor.fetchall()]

@router.get("")
async def get_sessions(device_id: str = Depends(require_device_id), conn = Depends(get_db)):
    """List chat sessions, most recently updated first."""
    return {"sessions": list_sessions(conn, device_id)}

@router.post("")
async def create_session(
    payload: Optional[SessionCreate] = None,
    device_id: str = Depends(require_device_id),
    conn = Depends(get_db),
):
    title = session_title(payload.firstMessageText if payload else "")
    session = ChatSession(id=new_id(), title=title, preview=title, updatedAt=now_ms(), messages=[])
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO sessions (id, device_id, title, preview, updated_at, messages_json)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (session.id, device_id, session.title, session.preview, session.updatedAt, "[]"),
    )
    conn.commit()
    return {"session": session.model_dump(mode="json", exclude_none=True)}

@router.put("/{session_id}")
async def update_session(
    session_id: str,
    payload: Optional[SessionUpdate] = None,
    device_id: str = Depends(require_device_id),
    conn = Depends(get_db),
):
    """Replace the message list, keeping only the most recent messages."""
    messages = cap_messages(payload.messages if payload else [])
    cursor = conn.cursor()
    cursor.execute(
        """
        UPDATE sessions SET preview = ?, updated_at = ?, messages_json = ?
        WHERE id = ? AND device_id = ?
        """,
        (
            session_preview(messages),
            now_ms(),
            json.dumps([message.model_dump(mode="json", exclude_none=True) for message in messages]),
            session_id,
            device_id,
        ),
    )
    conn.commit()
    return {"ok": True}

@router.delete("/{session_id}")
async def delete_session(session_id: str, device_id: str = Depends(require_device_id), conn = Depends(get_db)):
    cursor = conn.cursor()
    cursor.execute("DELETE FROM sessions WHERE id = ? AND device_id = ?", (session_id, device_id))
    conn.commit()
    return {"sessions": list_sessions(conn, device_id)}

@router.delete("")
async def clear_sessions(device_id: str = Depends(require_device_id), conn = Depends(get_db)):
    cursor = conn.cursor()
    cursor.execute("DELETE FROM sessions WHERE device_id = ?", (device_id,))
    conn.commit()
    return {"ok": True}
