import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".curio"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

DEFAULT_PORT = 8787
DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"

def load_config() -> Dict[str, Any]:
    """Load config from ~/.curio/config.toml, copy example if missing, load .env overrides."""
    load_dotenv(Path.cwd() / ".env.local")
    load_dotenv()
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    server_cfg = config.get("server", {})
    config["server"] = {
        "host": os.getenv("HOST", server_cfg.get("host", "127.0.0.1")),
        "port": int(os.getenv("PORT", server_cfg.get("port", DEFAULT_PORT))),
        "db_path": os.getenv("DB_PATH", server_cfg.get("db_path", str(CONFIG_DIR / "curio.db"))),
        "log_level": os.getenv("LOG_LEVEL", server_cfg.get("log_level", "info")),
    }
    openai_cfg = config.get("openai", {})
    config["openai"] = {
        "api_key": os.getenv("OPENAI_API_KEY", openai_cfg.get("api_key", "")),
        "model": os.getenv("OPENAI_MODEL", openai_cfg.get("model", DEFAULT_MODEL)),
        "base_url": os.getenv("OPENAI_BASE_URL", openai_cfg.get("base_url", DEFAULT_OPENAI_BASE_URL)).rstrip("/"),
        "timeout": float(os.getenv("OPENAI_TIMEOUT", openai_cfg.get("timeout", 60))),
    }
    client_cfg = config.get("client", {})
    config["client"] = {
        # Empty base URL means same origin as the page serving the app
        "api_base_url": os.getenv("CURIO_API_BASE_URL", client_cfg.get("api_base_url", "")).rstrip("/"),
        "data_dir": os.getenv("CURIO_DATA_DIR", client_cfg.get("data_dir", str(CONFIG_DIR / "client"))),
    }
    return config
