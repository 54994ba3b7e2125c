"""Model-backed features: identify-this-object, knowledge cards, chat companion.

All inference goes through the backend proxy (``/api/ai/responses``). Every
feature has a fixed, child-friendly fallback so a flaky model never leaves
the screen empty.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from client.remote import RemoteDataService, RemoteError
from client.sync import SyncedStore
from models.library import DEFAULT_CATEGORY, ItemType, LibraryItemCreate
from models.session import ChatMessage, ChatRole, ChatSession
from utils.ids import new_id, now_ms

logger = logging.getLogger(__name__)

CHAT_XP_REWARD = 15
_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def build_text_input(text: str) -> Dict[str, str]:
    return {"type": "input_text", "text": text}


def build_image_input(image_url: str) -> Dict[str, str]:
    return {"type": "input_image", "image_url": image_url}


def user_turn(*parts: Dict[str, str]) -> Dict[str, Any]:
    return {"role": "user", "content": list(parts)}


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences models like to wrap JSON in."""
    return _FENCE_RE.sub("", text or "").strip()


def parse_json_reply(text: str) -> Dict[str, Any]:
    """Parse a model reply that should be a JSON object; raises ``ValueError`` otherwise."""
    data = json.loads(strip_code_fences(text) or "{}")
    if not isinstance(data, dict):
        raise ValueError("Model reply was not a JSON object")
    return data


# Identify this object

IDENTIFY_INSTRUCTIONS = """
Analyze this image meticulously. Identify the main subject (plant, animal, object, landmark, etc.).
Return STRICT JSON (no markdown code blocks):
{
  "name": "Common name",
  "scientificName": "Scientific/Latin name or alternate name",
  "category": "Broad category (e.g. Flowering plants, Mammals, Baroque architecture)",
  "description": "An educational description of about 100 characters, objective and encyclopedia-like.",
  "attributes": [{"label": "Key trait", "value": "Value"}],
  "funFact": "One fascinating, lesser-known fact.",
  "relatedQuestions": ["Deep-dive question 1?", "Deep-dive question 2?"]
}
Give exactly 3 attributes (e.g. Era, Material, Origin, Habitat) and 2 related questions.
""".strip()


class Attribute(BaseModel):
    label: str = ""
    value: str = ""


class ScanResult(BaseModel):
    name: str
    scientificName: str = ""
    category: str = DEFAULT_CATEGORY
    description: str = "No detailed description yet."
    attributes: List[Attribute] = Field(default_factory=list)
    funFact: str = "Searching the knowledge base for more."
    relatedQuestions: List[str] = Field(default_factory=list)
    recognized: bool = True

    def to_library_item(self, thumbnail: Optional[str] = None) -> LibraryItemCreate:
        return LibraryItemCreate(
            type=ItemType.SCAN,
            title=self.name,
            content=self.description,
            category=self.category,
            thumbnail=thumbnail,
            funFact=self.funFact,
            relatedQuestions=self.relatedQuestions,
            tags=[attribute.value for attribute in self.attributes],
        )


def scan_interrupted() -> ScanResult:
    return ScanResult(
        name="Scan interrupted",
        scientificName="Unknown Error",
        category="System message",
        description="The picture seems blurry or the subject is unclear. Try another angle or better light.",
        funFact="Even the best explorers need to wipe their lens sometimes.",
        recognized=False,
    )


def _scan_from_reply(data: Dict[str, Any]) -> ScanResult:
    if not data.get("name"):
        raise ValueError("Model reply has no name")
    # Blank strings from the model fall back to the field defaults
    cleaned = {key: value for key, value in data.items() if value not in (None, "")}
    return ScanResult.model_validate(cleaned)


async def identify_object(remote: RemoteDataService, image_url: str, model: Optional[str] = None) -> ScanResult:
    """Ask the vision model what is in the picture (``image_url`` may be a data URL)."""
    try:
        text = await remote.create_response(
            [user_turn(build_image_input(image_url), build_text_input(IDENTIFY_INSTRUCTIONS))],
            model=model,
        )
        return _scan_from_reply(parse_json_reply(text))
    except (RemoteError, ValueError, ValidationError) as exc:
        logger.warning("Object identification failed: %s", exc)
        return scan_interrupted()


# Knowledge cards

CARD_INSTRUCTIONS = """
Generate a natural-science knowledge card for children.
Return JSON only:
{
  "title": "Title (e.g. Why does ...?)",
  "content": "Simple explanation, about 50 words",
  "category": "Nature (or Animals/Plants)",
  "keyword": "nature"
}
""".strip()


class KnowledgeCard(BaseModel):
    title: str
    content: str
    category: str = "Nature"
    keyword: str = "nature"

    def to_library_item(self, thumbnail: Optional[str] = None) -> LibraryItemCreate:
        return LibraryItemCreate(
            type=ItemType.CARD,
            title=self.title,
            content=self.content,
            category=self.category,
            thumbnail=thumbnail,
            tags=[self.keyword] if self.keyword else None,
        )


def fallback_card() -> KnowledgeCard:
    return KnowledgeCard(
        title="Why is a cactus covered in spines?",
        content=(
            "Long ago cacti shrank their wide leaves into thin spines to keep water "
            "inside in the dry desert. The spines also stop hungry animals from taking a bite!"
        ),
        category="Nature",
        keyword="cactus",
    )


async def generate_knowledge_card(remote: RemoteDataService, model: Optional[str] = None) -> KnowledgeCard:
    try:
        text = await remote.create_response(CARD_INSTRUCTIONS, model=model)
        return KnowledgeCard.model_validate(parse_json_reply(text))
    except (RemoteError, ValueError, ValidationError) as exc:
        logger.warning("Knowledge card generation failed: %s", exc)
        return fallback_card()


# Chat companion

COMPANION_INSTRUCTIONS = """
You are "Q-Bot", an AI explorer from the future and the best robot friend of curious kids aged 5 to 10.
- Be super enthusiastic, like a cartoon character. Use emoji and exclamations.
- Explain hard ideas with everyday comparisons, e.g. "A battery is a toy's energy juice box!"
- Do not just answer: ask the child what they think, or invite them to imagine together.
- If a topic is dangerous (fire, climbing, strangers, swallowing things), turn serious but gentle,
  remind them to stay safe and suggest asking a grown-up.
- No textbook language or long lectures. At most 3-4 sentences per reply.
- End with a fun little question so the conversation bounces back like a ball.
""".strip()

COMPANION_ERROR_TEXT = "Oops, my signal antenna got tangled! Could you say that again?"


def history_input(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    """Chat history as Responses API turns (``model`` maps to ``assistant``)."""
    turns = []
    for message in messages:
        if message.isError:
            continue
        if message.role == ChatRole.USER:
            turns.append({"role": "user", "content": [build_text_input(message.text)]})
        else:
            turns.append({"role": "assistant", "content": [{"type": "output_text", "text": message.text}]})
    return turns


class ChatCompanion:
    """One conversation with the companion, persisted through the synced store."""

    def __init__(self, store: SyncedStore, remote: RemoteDataService, session: Optional[ChatSession] = None,
                 model: Optional[str] = None, temperature: Optional[float] = None):
        self.store = store
        self.remote = remote
        self.model = model
        self.temperature = temperature
        self.session_id = session.id if session else None
        self.messages: List[ChatMessage] = list(session.messages) if session else []

    async def send(self, text: str) -> ChatMessage:
        """Send one user message and return the companion's reply.

        Session persistence errors propagate; a model failure becomes an
        ``isError`` reply instead. XP is awarded either way.
        """
        text = text.strip()
        if not text:
            raise ValueError("Message text is empty")
        if self.session_id is None:
            session = await self.store.create_session(text)
            self.session_id = session.id

        self.messages.append(ChatMessage(id=new_id(), role=ChatRole.USER, text=text, timestamp=now_ms()))
        await self.store.update_session(self.session_id, self.messages)

        try:
            try:
                reply_text = await self.remote.create_response(
                    history_input(self.messages),
                    instructions=COMPANION_INSTRUCTIONS,
                    temperature=self.temperature,
                    model=self.model,
                )
                reply = ChatMessage(id=new_id(), role=ChatRole.MODEL, text=reply_text, timestamp=now_ms())
            except RemoteError as exc:
                logger.warning("Companion reply failed: %s", exc)
                reply = ChatMessage(
                    id=new_id(), role=ChatRole.MODEL, text=COMPANION_ERROR_TEXT, timestamp=now_ms(), isError=True
                )
            self.messages.append(reply)
            if not reply.isError:
                await self.store.update_session(self.session_id, self.messages)
            return reply
        finally:
            await self.store.add_xp(CHAT_XP_REWARD)

    async def reset(self) -> None:
        """Empty the current conversation (the session itself is kept)."""
        self.messages = []
        if self.session_id is not None:
            await self.store.update_session(self.session_id, [])
