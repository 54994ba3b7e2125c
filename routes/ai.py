import logging
from functools import lru_cache
from typing import Any, AsyncIterator, Dict

import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse

from config import load_config
from models.ai import AiRequest, AiResponse
from utils.openai import build_upstream_payload, extract_output_text

logger = logging.getLogger(__name__)

router = APIRouter()

@lru_cache(maxsize=1)
def get_openai_config() -> Dict[str, Any]:
    """Read once per process; call ``cache_clear()`` after changing the environment."""
    return load_config()["openai"]

async def get_http_client(openai_cfg: Dict[str, Any] = Depends(get_openai_config)) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=openai_cfg.get("timeout", 60)) as client:
        yield client

@router.post("/responses", response_model=AiResponse)
async def create_response(
    request: AiRequest,
    openai_cfg: Dict[str, Any] = Depends(get_openai_config),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Proxy one inference request upstream and flatten the reply to ``{text}``.

    No device header is needed. Upstream failures come back with the
    upstream status and body untouched.
    """
    api_key = openai_cfg.get("api_key")
    if not api_key:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Missing OPENAI_API_KEY on server")

    payload = build_upstream_payload(request, openai_cfg["model"])
    try:
        upstream = await client.post(
            f"{openai_cfg['base_url']}/responses",
            json=payload,
            headers={"Authorization": f"Bearer {api_key}"},
        )
    except httpx.HTTPError as exc:
        logger.error("Model proxy request failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Model proxy failed: {exc}")

    if upstream.is_error:
        logger.warning("Upstream model returned %s", upstream.status_code)
        return PlainTextResponse(upstream.text, status_code=upstream.status_code)

    try:
        data = upstream.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Model proxy failed: upstream returned invalid JSON")
    return AiResponse(text=extract_output_text(data).strip())
