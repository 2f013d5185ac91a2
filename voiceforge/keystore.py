"""User-local set of previously entered API keys, kept as a JSON array."""

import json
import logging
from pathlib import Path
from typing import Union

log = logging.getLogger(__name__)


class ApiKeyStore:

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()
        self._keys: list[str] = self._load()

    def _load(self) -> list[str]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable key store %s: %s", self.path, e)
            return []
        if not isinstance(data, list):
            log.warning("Ignoring key store %s: expected a JSON array", self.path)
            return []
        return [k for k in data if isinstance(k, str) and k]

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._keys), encoding="utf-8")

    def keys(self) -> list[str]:
        return list(self._keys)

    def add(self, key: str) -> None:
        if not key or key in self._keys:
            return
        self._keys.append(key)
        self._save()

    def remove(self, key: str) -> None:
        if key not in self._keys:
            return
        self._keys = [k for k in self._keys if k != key]
        self._save()

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)
