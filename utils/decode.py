"""Parse-or-default decoding for JSON stored in rows and cache files.

Stored JSON is never trusted: anything missing, unparsable, or of the wrong
shape decodes to a ``Fallback`` carrying the default and the reason, so
callers (and tests) can tell which path was taken.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

MISSING = "missing"
MALFORMED = "malformed"
WRONG_TYPE = "wrong-type"


@dataclass(frozen=True)
class Parsed:
    value: Any
    ok: bool = True


@dataclass(frozen=True)
class Fallback:
    value: Any
    reason: str
    ok: bool = False


Decoded = Union[Parsed, Fallback]


def decode_json(raw: Optional[Union[str, bytes]], default: Any, expect: Optional[type] = None) -> Decoded:
    """Decode ``raw`` as JSON, falling back to ``default``.

    ``expect`` defaults to the type of ``default`` when it is a dict or list,
    so a stored ``"null"`` or a bare string never stands in for an object.
    """
    if raw is None or (isinstance(raw, (str, bytes)) and not raw.strip()):
        return Fallback(default, MISSING)
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return Fallback(default, MALFORMED)
    if expect is None and isinstance(default, (dict, list)):
        expect = type(default)
    if expect is not None and not isinstance(value, expect):
        return Fallback(default, WRONG_TYPE)
    return Parsed(value)
