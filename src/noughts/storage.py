"""Key-value stores used to persist scores between sessions."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Protocol, Union
import json
import logging
import threading

logger = logging.getLogger(__name__)


class ScoreStore(Protocol):
    def load(self, key: str) -> Optional[str]: ...

    def save(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryScoreStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.values: Dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def save(self, key: str, value: str) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


class JsonFileScoreStore:
    """
    Durable store backed by a single JSON object on disk.

    The whole file is rewritten on every change; a missing or corrupt file
    reads as empty so a fresh install starts from zero.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def save(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)

    # ---- helpers ----

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Could not read score file %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Score file %s does not hold an object", self.path)
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)
