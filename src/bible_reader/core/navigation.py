from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from bible_reader.data.loader import Corpus
from bible_reader.utils.address import VerseAddress


logger = logging.getLogger(__name__)


class SelectionLevel:
    BOOK = "book"
    CHAPTER = "chapter"
    VERSE = "verse"


@dataclass(frozen=True)
class HierarchySelection:
    """
    One step of a deep link into the browsing hierarchy.

    chapter_index / verse_index are None above their level.
    """

    level: str
    book_index: int
    book_id: str
    title: str
    chapter_index: Optional[int] = None
    verse_index: Optional[int] = None

    def address(self) -> Optional[VerseAddress]:
        if self.chapter_index is None or self.verse_index is None:
            return None
        return VerseAddress(self.book_index, self.chapter_index, self.verse_index)


class ResolutionReason:
    INVALID_ADDRESS = "invalid_address"


class ResolutionError(Exception):
    def __init__(self, address: VerseAddress, reason: str = ResolutionReason.INVALID_ADDRESS) -> None:
        super().__init__(f"Cannot resolve {address}: {reason}")
        self.address = address
        self.reason = reason


class NavigationResolver:
    def resolve(self, address: VerseAddress, corpus: Corpus) -> list[HierarchySelection]:
        if not corpus.is_valid(address):
            raise ResolutionError(address)

        book = corpus.books[address.book_index]
        chapter_title = f"{book.display_name} {address.chapter_index + 1}"
        return [
            HierarchySelection(
                level=SelectionLevel.BOOK,
                book_index=address.book_index,
                book_id=book.id,
                title=book.display_name,
            ),
            HierarchySelection(
                level=SelectionLevel.CHAPTER,
                book_index=address.book_index,
                book_id=book.id,
                title=chapter_title,
                chapter_index=address.chapter_index,
            ),
            HierarchySelection(
                level=SelectionLevel.VERSE,
                book_index=address.book_index,
                book_id=book.id,
                title=corpus.reference(address),
                chapter_index=address.chapter_index,
                verse_index=address.verse_index,
            ),
        ]

    def resolve_or_empty(self, address: VerseAddress, corpus: Corpus) -> list[HierarchySelection]:
        # Stale persisted addresses navigate to nothing.
        try:
            return self.resolve(address, corpus)
        except ResolutionError as e:
            logger.info("%s", e)
            return []
