"""Best-effort key/value cache of last-known-good entity copies.

Each key is one JSON file in the cache directory. Nothing here raises: a
missing or corrupt file is a miss, a failed write is logged and dropped. The
app keeps working without the cache, it just waits on the network more.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from utils.decode import Decoded, decode_json

logger = logging.getLogger(__name__)

SETTINGS = "settings"
STATS = "stats"
LIBRARY = "library"
SESSIONS = "sessions"
CACHE_KEYS = (SETTINGS, STATS, LIBRARY, SESSIONS)

KEY_PREFIX = "curio_"


@dataclass(frozen=True)
class CacheRead:
    value: Any
    has_cache: bool
    decoded: Decoded


class LocalCache:
    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()

    def path_for(self, key: str) -> Path:
        return self.directory / f"{KEY_PREFIX}{key}.json"

    def read(self, key: str, default: Any = None) -> CacheRead:
        try:
            raw = self.path_for(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            raw = None
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Cache read for %s failed: %s", key, exc)
            raw = None
        expect = type(default) if isinstance(default, (dict, list)) else None
        decoded = decode_json(raw, default, expect=expect)
        if not decoded.ok and raw is not None:
            logger.debug("Ignoring cached %s (%s)", key, decoded.reason)
        return CacheRead(value=decoded.value, has_cache=decoded.ok, decoded=decoded)

    def write(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            payload = json.dumps(value, ensure_ascii=False)
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Cache write for %s failed: %s", key, exc)

    def remove(self, key: str) -> None:
        try:
            self.path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Cache remove for %s failed: %s", key, exc)

    def clear(self) -> None:
        for key in CACHE_KEYS:
            self.remove(key)
