import asyncio
import json

import httpx

from client.ai import (
    CHAT_XP_REWARD,
    COMPANION_ERROR_TEXT,
    ChatCompanion,
    fallback_card,
    generate_knowledge_card,
    identify_object,
    strip_code_fences,
)
from client.cache import LocalCache
from client.remote import RemoteDataService
from client.sync import SyncedStore
from main import app
from routes import ai

SCAN_REPLY = {
    "name": "Sunflower",
    "scientificName": "Helianthus annuus",
    "category": "Flowering plants",
    "description": "A tall summer flower whose head is made of hundreds of tiny florets.",
    "attributes": [{"label": "Season", "value": "Summer"}, {"label": "Height", "value": "3 m"}],
    "funFact": "Young sunflowers track the sun across the sky.",
    "relatedQuestions": ["Why do they face east?"],
}


def _proxy_stub(reply_text=None, status_code=200):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if status_code != 200:
            return httpx.Response(status_code, text="upstream down")
        return httpx.Response(200, json={"text": reply_text})

    return httpx.MockTransport(handler), seen


def _run(remote, coro_factory):
    async def runner():
        try:
            return await coro_factory()
        finally:
            await remote.aclose()

    return asyncio.run(runner())


def test_identify_object_parses_fenced_json():
    transport, seen = _proxy_stub("```json\n" + json.dumps(SCAN_REPLY) + "\n```")
    remote = RemoteDataService("device-a", base_url="http://testserver", transport=transport)

    result = _run(remote, lambda: identify_object(remote, "data:image/jpeg;base64,AAAA"))

    assert result.recognized
    assert result.name == "Sunflower"
    assert result.attributes[1].value == "3 m"
    body = json.loads(seen[0].content)
    assert body["input"][0]["content"][0] == {"type": "input_image", "image_url": "data:image/jpeg;base64,AAAA"}
    assert "x-device-id" not in seen[0].headers

    item = result.to_library_item(thumbnail="data:image/jpeg;base64,AAAA")
    assert item.type.value == "scan"
    assert item.tags == ["Summer", "3 m"]


def test_identify_object_falls_back_when_nothing_recognized():
    for transport, _ in (_proxy_stub(json.dumps({"category": "?"})), _proxy_stub(status_code=503), _proxy_stub("not json")):
        remote = RemoteDataService("device-a", base_url="http://testserver", transport=transport)

        result = _run(remote, lambda: identify_object(remote, "https://example.com/cat.jpg"))

        assert result.recognized is False
        assert result.name == "Scan interrupted"


def test_knowledge_card_fallback():
    transport, _ = _proxy_stub("[1, 2, 3]")
    remote = RemoteDataService("device-a", base_url="http://testserver", transport=transport)

    card = _run(remote, lambda: generate_knowledge_card(remote))

    assert card == fallback_card()


def test_strip_code_fences():
    assert strip_code_fences("```JSON\n{}\n```") == "{}"
    assert strip_code_fences("") == ""


def _use_upstream(handler):
    async def client_override():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            yield client

    app.dependency_overrides[ai.get_openai_config] = lambda: {
        "api_key": "sk-test",
        "model": "gpt-test",
        "base_url": "https://upstream.test/v1",
        "timeout": 5,
    }
    app.dependency_overrides[ai.get_http_client] = client_override


def test_companion_conversation_is_persisted(tmp_path, api):
    upstream_bodies = []

    def upstream(request):
        upstream_bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"output_text": "Wow! Volcanoes are mountains with hot juice inside! What do you think?"})

    _use_upstream(upstream)
    remote = RemoteDataService("device-a", base_url="http://testserver", transport=httpx.ASGITransport(app=app))
    store = SyncedStore(remote, LocalCache(tmp_path / "cache"))
    companion = ChatCompanion(store, remote)

    async def scenario():
        first = await companion.send("What is a volcano?")
        second = await companion.send("Is lava hot?")
        await store.aclose()
        return first, second, await remote.list_sessions(), await remote.get_stats()

    first, second, sessions, stats = _run(remote, scenario)

    assert first.text.startswith("Wow!")
    assert len(sessions) == 1
    assert sessions[0].title == "What is a volca..."
    assert [m.role.value for m in sessions[0].messages] == ["user", "model", "user", "model"]
    assert stats.xp == 2 * CHAT_XP_REWARD
    assert upstream_bodies[1]["input"][1]["role"] == "assistant"
    assert "Q-Bot" in upstream_bodies[0]["instructions"]


def test_companion_model_failure_becomes_error_reply(tmp_path, api):
    _use_upstream(lambda request: httpx.Response(500, text="upstream exploded"))
    remote = RemoteDataService("device-a", base_url="http://testserver", transport=httpx.ASGITransport(app=app))
    store = SyncedStore(remote, LocalCache(tmp_path / "cache"))
    companion = ChatCompanion(store, remote)

    async def scenario():
        reply = await companion.send("Hello?")
        await store.aclose()
        return reply, await remote.list_sessions(), await remote.get_stats()

    reply, sessions, stats = _run(remote, scenario)

    assert reply.isError is True
    assert reply.text == COMPANION_ERROR_TEXT
    assert [m.role.value for m in sessions[0].messages] == ["user"]
    assert stats.xp == CHAT_XP_REWARD
