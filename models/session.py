from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum

MAX_SESSION_MESSAGES = 100
TITLE_LENGTH = 15
PREVIEW_LENGTH = 30

class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"

class ChatMessage(BaseModel):
    id: str
    role: ChatRole
    text: str = ""
    timestamp: int  # epoch ms
    isError: Optional[bool] = None

class ChatSession(BaseModel):
    id: str
    title: str = ""
    preview: str = ""
    updatedAt: int
    messages: List[ChatMessage] = Field(default_factory=list)

class SessionCreate(BaseModel):
    firstMessageText: str = ""

class SessionUpdate(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)

def session_title(first_message_text: str) -> str:
    """First 15 characters of the opening message, with an ellipsis when cut."""
    text = (first_message_text or "").strip()
    return text[:TITLE_LENGTH] + ("..." if len(text) > TITLE_LENGTH else "")

def session_preview(messages: List[ChatMessage]) -> str:
    if not messages:
        return ""
    return messages[-1].text[:PREVIEW_LENGTH] + "..."

def cap_messages(messages: List[ChatMessage]) -> List[ChatMessage]:
    """Keep only the most recent messages, in original order."""
    return list(messages[-MAX_SESSION_MESSAGES:])
