# Client package - device-side cache/sync layer and model helpers
from pathlib import Path
from typing import Optional

import httpx

from config import load_config
from .cache import LocalCache
from .device import DeviceIdentity
from .remote import RemoteDataService, RemoteError
from .sync import ChangeFeed, SyncedStore


def open_store(
    data_dir: Optional[Path] = None,
    base_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SyncedStore:
    """Wire identity, cache and remote service for this installation.

    Missing arguments come from the ``[client]`` config section. Close the
    store's ``remote`` (and the store) when done.
    """
    if data_dir is None or base_url is None:
        client_cfg = load_config()["client"]
        data_dir = data_dir if data_dir is not None else Path(client_cfg["data_dir"])
        base_url = base_url if base_url is not None else client_cfg["api_base_url"]
    data_dir = Path(data_dir).expanduser()
    device_id = DeviceIdentity(data_dir).get()
    remote = RemoteDataService(device_id, base_url=base_url, transport=transport)
    return SyncedStore(remote, LocalCache(data_dir / "cache"))


__all__ = ['LocalCache', 'DeviceIdentity', 'RemoteDataService', 'RemoteError', 'ChangeFeed', 'SyncedStore', 'open_store']
