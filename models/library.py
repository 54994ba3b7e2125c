from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from enum import Enum

DEFAULT_CATEGORY = "General"

class ItemType(str, Enum):
    SCAN = "scan"
    CARD = "card"

class LibraryItemBase(BaseModel):
    type: ItemType = ItemType.CARD
    title: str = ""
    content: str = ""
    category: str = DEFAULT_CATEGORY
    thumbnail: Optional[str] = None
    funFact: Optional[str] = None
    relatedQuestions: Optional[List[str]] = None
    tags: Optional[List[str]] = None

class LibraryItemCreate(LibraryItemBase):
    @field_validator("type", mode="before")
    @classmethod
    def blank_type_is_card(cls, v):
        return v or ItemType.CARD

    @field_validator("title", "content", mode="before")
    @classmethod
    def none_is_blank(cls, v):
        return v or ""

    @field_validator("category", mode="before")
    @classmethod
    def blank_category_is_default(cls, v):
        return v or DEFAULT_CATEGORY

    @field_validator("thumbnail", "funFact", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return v or None

class LibraryItem(LibraryItemBase):
    id: str
    date: int  # epoch ms

    class Config:
        from_attributes = True

class LibraryCreateRequest(BaseModel):
    item: LibraryItemCreate = Field(default_factory=LibraryItemCreate)
