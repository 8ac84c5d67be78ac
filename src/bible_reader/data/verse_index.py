from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Optional

from bible_reader.data.loader import Corpus
from bible_reader.utils.address import VerseAddress, format_reference, format_share_text


@dataclass(frozen=True)
class VerseIndexEntry:
    address: VerseAddress
    book_display_name: str
    text: str

    @property
    def ref(self) -> str:
        return format_reference(self.book_display_name, self.address)

    @property
    def share_text(self) -> str:
        return format_share_text(self.text, self.ref)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.address.to_dict(),
            "book": self.book_display_name,
            "text": self.text,
            "ref": self.ref,
        }


class VerseIndex:
    """Flattened view of every verse, in book/chapter/verse order."""

    def __init__(self, entries: list[VerseIndexEntry], *, seed: Optional[int] = None) -> None:
        self._entries = tuple(entries)
        self._positions = {e.address: i for i, e in enumerate(self._entries)}
        self._rng = random.Random(seed)

    @classmethod
    def build(cls, corpus: Corpus, *, seed: Optional[int] = None) -> "VerseIndex":
        entries: list[VerseIndexEntry] = []
        for b, book in enumerate(corpus.books):
            for c, chapter in enumerate(book.chapters):
                for v, text in enumerate(chapter):
                    entries.append(
                        VerseIndexEntry(
                            address=VerseAddress(b, c, v),
                            book_display_name=book.display_name,
                            text=text,
                        )
                    )
        return cls(entries, seed=seed)

    def __len__(self) -> int:
        return len(self._entries)

    def all(self) -> tuple[VerseIndexEntry, ...]:
        return self._entries

    def position(self, address: VerseAddress) -> Optional[int]:
        return self._positions.get(address)

    def entry_for(self, address: VerseAddress) -> Optional[VerseIndexEntry]:
        pos = self._positions.get(address)
        return None if pos is None else self._entries[pos]

    def random_entry(self) -> Optional[VerseIndexEntry]:
        if not self._entries:
            return None
        return self._rng.choice(self._entries)
