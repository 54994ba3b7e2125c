from typing import Optional

from fastapi import APIRouter, Depends

from db.database import get_db
from models.stats import XpAward
from utils.auth import require_device_id
from utils.ids import now_ms
from utils.stats import apply_daily_login, load_stats, save_stats

router = APIRouter()

@router.get("")
async def get_stats(device_id: str = Depends(require_device_id), conn = Depends(get_db)):
    """Fetch stats, counting a new active day when the calendar date has changed."""
    stats, exists = load_stats(conn, device_id)
    stats, _ = apply_daily_login(stats)
    if not exists:
        stats = stats.model_copy(update={"joinDate": now_ms()})
    save_stats(conn, device_id, stats)
    conn.commit()
    return {"stats": stats.model_dump(mode="json")}

@router.post("/xp")
async def add_xp(
    award: Optional[XpAward] = None,
    device_id: str = Depends(require_device_id),
    conn = Depends(get_db),
):
    amount = award.amount if award else 0
    stats, _ = load_stats(conn, device_id)
    stats = stats.model_copy(update={"xp": (stats.xp or 0) + amount})
    save_stats(conn, device_id, stats)
    conn.commit()
    return {"stats": stats.model_dump(mode="json")}
