import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def new_id() -> str:
    """Row id in the form ``<epoch-ms>-<6 base36 chars>``."""
    return f"{now_ms()}-{random_suffix()}"
