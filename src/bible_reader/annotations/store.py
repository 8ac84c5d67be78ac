from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from bible_reader.annotations.storage import AnnotationPersistenceError, Storage
from bible_reader.data.loader import Corpus
from bible_reader.utils.address import VerseAddress, format_reference


logger = logging.getLogger(__name__)

STORAGE_KEY = "verse_items"


class AnnotationKind:
    NOTE = "note"
    BOOKMARK = "bookmark"
    FAVORITE = "favorite"

    @classmethod
    def all_kinds(cls) -> List[str]:
        return [cls.NOTE, cls.BOOKMARK, cls.FAVORITE]

    @classmethod
    def check(cls, kind: str) -> str:
        if kind not in cls.all_kinds():
            raise ValueError(f"Unknown annotation kind: {kind!r}")
        return kind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Annotation:
    id: str
    kind: str
    address: VerseAddress
    book_display_name: str
    snapshot_text: str
    custom_text: Optional[str]
    last_modified: datetime

    @property
    def ref(self) -> str:
        return format_reference(self.book_display_name, self.address)

    @property
    def display_text(self) -> str:
        if self.kind == AnnotationKind.NOTE and self.custom_text:
            return self.custom_text
        return self.snapshot_text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            **self.address.to_dict(),
            "book": self.book_display_name,
            "text": self.snapshot_text,
            "custom_text": self.custom_text,
            "last_modified": self.last_modified.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Annotation":
        custom = data.get("custom_text")
        stamp = datetime.fromisoformat(str(data["last_modified"]))
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return cls(
            id=str(data["id"]),
            kind=AnnotationKind.check(str(data["kind"])),
            address=VerseAddress.from_dict(data),
            book_display_name=str(data["book"]),
            snapshot_text=str(data["text"]),
            custom_text=None if custom is None else str(custom),
            last_modified=stamp,
        )


def serialize_annotations(items: List[Annotation]) -> str:
    return json.dumps([a.to_dict() for a in items], ensure_ascii=False)


def deserialize_annotations(blob: str) -> List[Annotation]:
    data = json.loads(blob)
    if not isinstance(data, list):
        raise ValueError("Invalid annotations blob (expected list)")
    items = []
    for pos, row in enumerate(data):
        if not isinstance(row, dict):
            raise ValueError(f"Invalid annotation row #{pos}: {row!r}")
        items.append(Annotation.from_dict(row))
    return items


class AnnotationStore:
    """
    Sole owner of the user's notes, bookmarks and favorites.

    Identity is (kind, address): at most one annotation per kind per verse.
    Every mutation rewrites the whole collection under STORAGE_KEY before it
    returns. Persistence failures are logged and kept in `persistence_error`;
    the in-memory state stays authoritative for the rest of the session.
    """

    def __init__(
        self,
        corpus: Corpus,
        storage: Storage,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.corpus = corpus
        self.storage = storage
        self.clock = clock
        self.persistence_error: Optional[str] = None
        self._items: Dict[str, Dict[VerseAddress, Annotation]] = {k: {} for k in AnnotationKind.all_kinds()}

    def load_from_storage(self) -> None:
        for bucket in self._items.values():
            bucket.clear()
        try:
            blob = self.storage.read(STORAGE_KEY)
            if blob is None:
                return
            loaded = deserialize_annotations(blob)
        except (AnnotationPersistenceError, ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable annotations: %s", e)
            self.persistence_error = str(e)
            return
        for a in loaded:
            self._items[a.kind][a.address] = a
        logger.debug("Loaded %s annotations", len(loaded))

    def _all(self) -> List[Annotation]:
        return [a for k in AnnotationKind.all_kinds() for a in self._items[k].values()]

    def _persist(self) -> None:
        try:
            self.storage.write(STORAGE_KEY, serialize_annotations(self._all()))
        except AnnotationPersistenceError as e:
            logger.warning("Annotations kept in memory only: %s", e)
            self.persistence_error = str(e)
            return
        self.persistence_error = None

    def find(self, kind: str, address: VerseAddress) -> Optional[Annotation]:
        return self._items[AnnotationKind.check(kind)].get(address)

    def list_by_kind(self, kind: str) -> List[Annotation]:
        return list(self._items[AnnotationKind.check(kind)].values())

    def upsert(self, kind: str, address: VerseAddress, custom_text: Optional[str] = None) -> Annotation:
        AnnotationKind.check(kind)
        self.corpus.validate(address)
        bucket = self._items[kind]
        existing = bucket.get(address)
        now = self.clock()

        if existing is not None:
            updated = replace(existing, last_modified=now)
            if kind == AnnotationKind.NOTE and custom_text is not None:
                updated = replace(updated, custom_text=custom_text)
        else:
            if kind == AnnotationKind.NOTE:
                note_text: Optional[str] = custom_text if custom_text is not None else ""
            else:
                note_text = None
            updated = Annotation(
                id=uuid.uuid4().hex,
                kind=kind,
                address=address,
                book_display_name=self.corpus.books[address.book_index].display_name,
                snapshot_text=self.corpus.verse_text(address),
                custom_text=note_text,
                last_modified=now,
            )
        bucket[address] = updated
        self._persist()
        return updated

    def add(self, kind: str, address: VerseAddress, custom_text: Optional[str] = None) -> Annotation:
        """Create an annotation; adding an existing bookmark or favorite changes nothing."""
        self.corpus.validate(address)
        if kind != AnnotationKind.NOTE:
            existing = self.find(kind, address)
            if existing is not None:
                return existing
        return self.upsert(kind, address, custom_text)

    def toggle(self, kind: str, address: VerseAddress) -> Optional[Annotation]:
        if self.find(kind, address) is not None:
            self.remove(kind, address)
            return None
        return self.upsert(kind, address)

    def remove(self, kind: str, address: VerseAddress) -> None:
        self._items[AnnotationKind.check(kind)].pop(address, None)
        self._persist()

    def __len__(self) -> int:
        return sum(len(b) for b in self._items.values())
