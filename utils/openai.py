from typing import Any, Dict, Optional

from models.ai import AiRequest


def build_upstream_payload(request: AiRequest, default_model: str) -> Dict[str, Any]:
    """Body for POST {base_url}/responses; unset optional fields are left out."""
    payload: Dict[str, Any] = {
        "model": request.model or default_model,
        "input": request.input,
    }
    if request.instructions is not None:
        payload["instructions"] = request.instructions
    if request.temperature is not None:
        payload["temperature"] = request.temperature
    return payload


def extract_output_text(data: Optional[Dict[str, Any]]) -> str:
    """Flatten a Responses API payload into plain text.

    Prefers the ``output_text`` convenience field; otherwise concatenates
    every ``output_text`` part of every ``message`` output item.
    """
    if not isinstance(data, dict):
        return ""
    if isinstance(data.get("output_text"), str):
        return data["output_text"]
    outputs = data.get("output")
    if not isinstance(outputs, list):
        return ""
    text = ""
    for item in outputs:
        if not isinstance(item, dict) or item.get("type") != "message":
            continue
        contents = item.get("content")
        if not isinstance(contents, list):
            continue
        for content in contents:
            if isinstance(content, dict) and content.get("type") == "output_text" and isinstance(content.get("text"), str):
                text += content["text"]
    return text
