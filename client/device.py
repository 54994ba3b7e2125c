from __future__ import annotations

import logging
import random
import string
import uuid
from pathlib import Path
from typing import Optional

from utils.ids import now_ms

logger = logging.getLogger(__name__)

DEVICE_ID_FILE = "device_id"
_FALLBACK_ALPHABET = string.digits + string.ascii_lowercase


def generate_device_id() -> str:
    """UUID4 when the OS random source is available, else ``<epoch-ms>-<suffix>``."""
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        suffix = "".join(random.choice(_FALLBACK_ALPHABET) for _ in range(6))
        return f"{now_ms()}-{suffix}"


class DeviceIdentity:
    """Stable per-installation identifier, persisted to a small file.

    If the file cannot be written the freshly generated id is still returned,
    which means a new id on every call until storage works again.
    """

    def __init__(self, directory: Path):
        self.path = Path(directory).expanduser() / DEVICE_ID_FILE
        self._device_id: Optional[str] = None

    def _read(self) -> Optional[str]:
        try:
            value = self.path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            return None
        return value or None

    def get(self) -> str:
        if self._device_id:
            return self._device_id
        device_id = self._read()
        if device_id is None:
            device_id = generate_device_id()
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(device_id, encoding="utf-8")
            except OSError as exc:
                logger.warning("Could not persist device id to %s: %s", self.path, exc)
                return device_id
        self._device_id = device_id
        return device_id
