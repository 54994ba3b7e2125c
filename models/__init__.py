from .settings import Settings, Theme, default_settings
from .stats import Stats, XpAward, default_stats
from .library import LibraryItem, LibraryItemCreate, LibraryCreateRequest, ItemType
from .session import ChatMessage, ChatSession, ChatRole, SessionCreate, SessionUpdate
from .storage import StorageBreakdown
from .ai import AiRequest, AiResponse

__all__ = [
    'Settings', 'Theme', 'default_settings',
    'Stats', 'XpAward', 'default_stats',
    'LibraryItem', 'LibraryItemCreate', 'LibraryCreateRequest', 'ItemType',
    'ChatMessage', 'ChatSession', 'ChatRole', 'SessionCreate', 'SessionUpdate',
    'StorageBreakdown',
    'AiRequest', 'AiResponse',
]
