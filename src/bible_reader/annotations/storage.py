from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional


class AnnotationPersistenceError(Exception):
    pass


class Storage:
    """Key -> serialized blob store (the on-disk counterpart of a preferences store)."""

    def read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def write(self, key: str, blob: str) -> None:
        raise NotImplementedError


class MemoryStorage(Storage):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.blobs: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def write(self, key: str, blob: str) -> None:
        self.blobs[key] = blob


class JsonFileStorage(Storage):
    """
    All keys live in one JSON object on disk. Writes go through a temp file
    and os.replace so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise AnnotationPersistenceError(f"Unreadable storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise AnnotationPersistenceError(f"Invalid storage format (expected object): {self.path}")
        return data

    def read(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise AnnotationPersistenceError(f"Invalid blob under {key!r} in {self.path}")
        return value

    def write(self, key: str, blob: str) -> None:
        try:
            data = self._load()
        except AnnotationPersistenceError:
            data = {}
        data[key] = blob
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise AnnotationPersistenceError(f"Couldn't write {self.path}: {e}") from e
