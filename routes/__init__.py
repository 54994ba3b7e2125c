# Routes package __init__.py - re-exports routers for main.py convenience
from .settings import router as settings_router
from .stats import router as stats_router
from .sessions import router as sessions_router
from .library import router as library_router
from .storage import router as storage_router
from .ai import router as ai_router

__all__ = ['settings_router', 'stats_router', 'sessions_router', 'library_router', 'storage_router', 'ai_router']
