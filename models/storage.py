from pydantic import BaseModel

class StorageBreakdown(BaseModel):
    """Serialized size of each entity collection, sizes in KB with one decimal."""
    librarySize: str = "0.0"
    libraryCount: int = 0
    sessionsSize: str = "0.0"
    sessionsCount: int = 0
    systemSize: str = "0.0"
    totalSize: str = "0.0"
