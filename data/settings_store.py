"""
Persisted client state: a prefixed key-value namespace in one JSON file.
Entries may carry an expiry; an expired entry reads back as absent and is purged on that read.
"""
import json
import time
from pathlib import Path

from config import SETTINGS_FILE, SETTINGS_PREFIX

API_KEY_KEY = "kimi_api_key"


class SettingsStore:
    def __init__(self, path: str | Path = SETTINGS_FILE, prefix: str = SETTINGS_PREFIX, clock=time.time):
        self.path = Path(path)
        self.prefix = prefix
        self._clock = clock

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, json.JSONDecodeError) as e:
            print(f"[SETTINGS] could not read {self.path}: {e}")
            return {}

    def _save(self, data: dict):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(data, f)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str, default=None):
        data = self._load()
        entry = data.get(self._key(key))
        if entry is None:
            return default
        expires_at = entry.get("expires_at")
        if expires_at is not None and self._clock() >= expires_at:
            del data[self._key(key)]
            self._save(data)
            return default
        return entry.get("value", default)

    def set(self, key: str, value, expires_in: float | None = None):
        data = self._load()
        data[self._key(key)] = {
            "value": value,
            "expires_at": self._clock() + expires_in if expires_in else None,
        }
        self._save(data)

    def remove(self, key: str):
        data = self._load()
        if data.pop(self._key(key), None) is not None:
            self._save(data)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self):
        """Drop every key in this namespace; other prefixes in the same file are left alone."""
        data = self._load()
        kept = {k: v for k, v in data.items() if not k.startswith(self.prefix)}
        if len(kept) != len(data):
            self._save(kept)

    def get_api_key(self) -> str:
        return self.get(API_KEY_KEY, "") or ""

    def set_api_key(self, api_key: str):
        self.set(API_KEY_KEY, api_key.strip())
        print("[SETTINGS] API key updated")
