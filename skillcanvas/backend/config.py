"""Configuration loaded from environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Storage: path of the JSON store file. Empty keeps everything in memory,
# "none" simulates an environment without persistent storage.
STORE_PATH: str = os.getenv("SKILLCANVAS_STORE", str(Path.home() / ".skillcanvas" / "store.json"))

# Server
HOST: str = os.getenv("HOST", "127.0.0.1")
PORT: int = int(os.getenv("PORT", "8765"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS: list[str] = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"
    ).split(",")
    if o.strip()
]

# Editor
AUTOSAVE_DELAY: float = float(os.getenv("AUTOSAVE_DELAY", "0.5"))
HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "100"))


def build_store(setting: str | None = None):
    """Create the key-value store described by `setting` (defaults to STORE_PATH)."""
    from skillcanvas.backend.storage import JsonFileStore, MemoryStore, NullStore

    setting = STORE_PATH if setting is None else setting
    if not setting:
        return MemoryStore()
    if setting.lower() == "none":
        return NullStore()
    return JsonFileStore(Path(setting).expanduser())
