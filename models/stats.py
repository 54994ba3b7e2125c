from pydantic import BaseModel, Field

from utils.ids import now_ms

class Stats(BaseModel):
    itemsSaved: int = 0
    daysActive: int = 1
    lastLogin: int = Field(default_factory=now_ms)
    joinDate: int = Field(default_factory=now_ms)
    xp: int = 0

    class Config:
        extra = "ignore"

class XpAward(BaseModel):
    amount: int = 0

def default_stats() -> Stats:
    return Stats()
