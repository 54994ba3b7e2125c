"""HTTP client for the Curio backend.

Every device-scoped call carries the ``x-device-id`` header of the device the
service was built for, so several simulated devices can share one process.
There are no retries; callers decide between surfacing and falling back.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from models.ai import AiResponse
from models.library import LibraryItem, LibraryItemCreate
from models.session import ChatMessage, ChatSession
from models.settings import Settings
from models.stats import Stats
from models.storage import StorageBreakdown

logger = logging.getLogger(__name__)

DEVICE_HEADER = "x-device-id"
DEFAULT_TIMEOUT = 30.0


class RemoteError(Exception):
    """A backend call that did not succeed.

    ``status_code`` is the HTTP status, or 0 when no response arrived.
    """

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Remote call failed ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


class RemoteDataService:
    def __init__(
        self,
        device_id: str,
        base_url: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        self.device_id = device_id
        # Relative paths need some origin for httpx; same-origin means localhost
        self.base_url = base_url.rstrip("/") or "http://localhost"
        self._client = httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "RemoteDataService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, *, json: Any = None, scoped: bool = True) -> Dict[str, Any]:
        headers = {DEVICE_HEADER: self.device_id} if scoped else {}
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteError(0, str(exc)) from exc
        if response.is_error:
            raise RemoteError(response.status_code, response.text)
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(response.status_code, "Response was not valid JSON") from exc

    # Settings

    async def get_settings(self) -> Settings:
        data = await self._request("GET", "/api/settings")
        return Settings.model_validate(data["settings"])

    async def save_settings(self, settings: Union[Settings, Dict[str, Any]]) -> Settings:
        body = settings.model_dump(mode="json") if isinstance(settings, Settings) else settings
        data = await self._request("PUT", "/api/settings", json={"settings": body})
        return Settings.model_validate(data["settings"])

    # Stats

    async def get_stats(self) -> Stats:
        data = await self._request("GET", "/api/stats")
        return Stats.model_validate(data["stats"])

    async def add_xp(self, amount: int) -> Stats:
        data = await self._request("POST", "/api/stats/xp", json={"amount": amount})
        return Stats.model_validate(data["stats"])

    # Sessions

    async def list_sessions(self) -> List[ChatSession]:
        data = await self._request("GET", "/api/sessions")
        return [ChatSession.model_validate(session) for session in data["sessions"]]

    async def create_session(self, first_message_text: str) -> ChatSession:
        data = await self._request("POST", "/api/sessions", json={"firstMessageText": first_message_text})
        return ChatSession.model_validate(data["session"])

    async def update_session(self, session_id: str, messages: List[ChatMessage]) -> None:
        body = [message.model_dump(mode="json", exclude_none=True) for message in messages]
        await self._request("PUT", f"/api/sessions/{session_id}", json={"messages": body})

    async def delete_session(self, session_id: str) -> List[ChatSession]:
        data = await self._request("DELETE", f"/api/sessions/{session_id}")
        return [ChatSession.model_validate(session) for session in data["sessions"]]

    async def clear_sessions(self) -> None:
        await self._request("DELETE", "/api/sessions")

    # Library

    async def list_library(self) -> List[LibraryItem]:
        data = await self._request("GET", "/api/library")
        return [LibraryItem.model_validate(item) for item in data["items"]]

    async def create_library_item(self, item: LibraryItemCreate) -> LibraryItem:
        body = item.model_dump(mode="json", exclude_none=True)
        data = await self._request("POST", "/api/library", json={"item": body})
        return LibraryItem.model_validate(data["item"])

    async def delete_library_item(self, item_id: str) -> List[LibraryItem]:
        data = await self._request("DELETE", f"/api/library/{item_id}")
        return [LibraryItem.model_validate(item) for item in data["items"]]

    async def optimize_images(self) -> int:
        data = await self._request("POST", "/api/library/optimize-images")
        return int(data.get("optimized", 0))

    # Storage

    async def storage_breakdown(self) -> StorageBreakdown:
        data = await self._request("GET", "/api/storage/breakdown")
        return StorageBreakdown.model_validate(data["breakdown"])

    async def clear_all(self) -> None:
        await self._request("DELETE", "/api/all")

    # Model proxy

    async def create_response(
        self,
        input: Any,
        instructions: Optional[str] = None,
        temperature: Optional[float] = None,
        model: Optional[str] = None,
    ) -> str:
        """Run one inference through the backend proxy and return its text."""
        body = {"input": input, "instructions": instructions, "temperature": temperature, "model": model}
        data = await self._request("POST", "/api/ai/responses", json=body, scoped=False)
        return AiResponse.model_validate(data).text.strip()
