from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


class InvalidAddressError(ValueError):
    pass


@dataclass(frozen=True, order=True)
class VerseAddress:
    """
    Zero-based coordinate of a single verse:
      (book_index, chapter_index, verse_index)

    Only meaningful relative to a loaded Corpus; use Corpus.address() or
    Corpus.validate() to obtain one that is known to be in range.
    """

    book_index: int
    chapter_index: int
    verse_index: int

    def to_dict(self) -> dict[str, int]:
        return {
            "book_index": self.book_index,
            "chapter_index": self.chapter_index,
            "verse_index": self.verse_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VerseAddress":
        return cls(
            book_index=int(data["book_index"]),
            chapter_index=int(data["chapter_index"]),
            verse_index=int(data["verse_index"]),
        )


@dataclass(frozen=True, order=True)
class ChapterAddress:
    book_index: int
    chapter_index: int


def format_reference(book_name: str, address: VerseAddress) -> str:
    return f"{book_name} {address.chapter_index + 1}:{address.verse_index + 1}"


def format_share_text(text: str, reference: str) -> str:
    return f"{text}\n\n{reference}"


_REF_RE = re.compile(r"^\s*(?P<book>.+?)\s+(?P<chapter>\d+)(?::(?P<verse>\d+))?\s*$")


def split_reference(ref: str) -> tuple[str, int, int]:
    """
    Split a human reference like "1 John 3:16" into (book, chapter, verse),
    all one-based. A missing verse ("Psalms 23") means verse 1.
    """
    m = _REF_RE.match(ref)
    if not m:
        raise InvalidAddressError(f"Unparseable reference: {ref!r}")
    chapter = int(m.group("chapter"))
    verse = int(m.group("verse") or 1)
    if chapter <= 0 or verse <= 0:
        raise InvalidAddressError("chapter and verse must be >= 1")
    return m.group("book"), chapter, verse
