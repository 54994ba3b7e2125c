from pydantic import BaseModel
from typing import Any, Optional

class AiRequest(BaseModel):
    """Inference request forwarded to the upstream Responses API.

    ``input`` is either a plain string or a list of role/content turns, where
    content parts are ``input_text`` or ``input_image`` objects.
    """
    model: Optional[str] = None
    input: Any = None
    instructions: Optional[str] = None
    temperature: Optional[float] = None

class AiResponse(BaseModel):
    text: str = ""
