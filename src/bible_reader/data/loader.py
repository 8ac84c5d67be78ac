from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from bible_reader.utils.address import (
    ChapterAddress,
    InvalidAddressError,
    VerseAddress,
    format_reference,
    split_reference,
)


logger = logging.getLogger(__name__)


class CorpusLoadReason:
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"


class CorpusLoadError(Exception):
    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class Book:
    id: str
    display_name: str
    chapters: tuple[tuple[str, ...], ...]

    @property
    def verse_count(self) -> int:
        return sum(len(ch) for ch in self.chapters)


class Corpus:
    """Immutable book -> chapter -> verse hierarchy."""

    def __init__(self, books: list[Book]) -> None:
        self._books = tuple(books)
        self._key_to_index: dict[str, int] = {}
        for i, b in enumerate(self._books):
            self._key_to_index[b.id.casefold()] = i
            self._key_to_index.setdefault(b.display_name.casefold(), i)

    @property
    def books(self) -> tuple[Book, ...]:
        return self._books

    def __len__(self) -> int:
        return len(self._books)

    def book_index(self, name: str) -> int:
        key = name.strip().casefold()
        if key in self._key_to_index:
            return self._key_to_index[key]
        raise KeyError(f"Unknown book name: {name!r}")

    def is_valid(self, address: VerseAddress) -> bool:
        b, c, v = address.book_index, address.chapter_index, address.verse_index
        if not 0 <= b < len(self._books):
            return False
        chapters = self._books[b].chapters
        if not 0 <= c < len(chapters):
            return False
        return 0 <= v < len(chapters[c])

    def validate(self, address: VerseAddress) -> VerseAddress:
        if not self.is_valid(address):
            raise InvalidAddressError(f"Address out of range: {address}")
        return address

    def address(self, book_index: int, chapter_index: int, verse_index: int) -> VerseAddress:
        return self.validate(VerseAddress(book_index, chapter_index, verse_index))

    def verse_text(self, address: VerseAddress) -> str:
        self.validate(address)
        return self._books[address.book_index].chapters[address.chapter_index][address.verse_index]

    def reference(self, address: VerseAddress) -> str:
        self.validate(address)
        return format_reference(self._books[address.book_index].display_name, address)

    def parse_reference(self, ref: str) -> VerseAddress:
        book, chapter, verse = split_reference(ref)
        try:
            b = self.book_index(book)
        except KeyError as e:
            raise InvalidAddressError(str(e)) from e
        return self.address(b, chapter - 1, verse - 1)

    def chapter_address(self, book_index: int, chapter_index: int) -> ChapterAddress:
        if not 0 <= book_index < len(self._books):
            raise InvalidAddressError(f"Book out of range: {book_index}")
        if not 0 <= chapter_index < len(self._books[book_index].chapters):
            raise InvalidAddressError(f"Chapter out of range: {book_index}/{chapter_index}")
        return ChapterAddress(book_index, chapter_index)

    def parse_chapter_reference(self, ref: str) -> ChapterAddress:
        """"Psalms 23" -> chapter address; a verse part, if given, is ignored."""
        book, chapter, _ = split_reference(ref)
        try:
            b = self.book_index(book)
        except KeyError as e:
            raise InvalidAddressError(str(e)) from e
        return self.chapter_address(b, chapter - 1)

    def chapter_verses(self, chapter: ChapterAddress) -> tuple[str, ...]:
        self.chapter_address(chapter.book_index, chapter.chapter_index)
        return self._books[chapter.book_index].chapters[chapter.chapter_index]

    def chapter_title(self, chapter: ChapterAddress) -> str:
        self.chapter_address(chapter.book_index, chapter.chapter_index)
        return f"{self._books[chapter.book_index].display_name} {chapter.chapter_index + 1}"

    def next_chapter(self, chapter: ChapterAddress) -> ChapterAddress:
        """
        Next chapter, crossing into the next book that has chapters.
        Stays put on the last chapter of the corpus.
        """
        b, c = chapter.book_index, chapter.chapter_index
        self.chapter_address(b, c)
        if c + 1 < len(self._books[b].chapters):
            return ChapterAddress(b, c + 1)
        for nb in range(b + 1, len(self._books)):
            if self._books[nb].chapters:
                return ChapterAddress(nb, 0)
        return chapter

    def previous_chapter(self, chapter: ChapterAddress) -> ChapterAddress:
        b, c = chapter.book_index, chapter.chapter_index
        self.chapter_address(b, c)
        if c > 0:
            return ChapterAddress(b, c - 1)
        for pb in range(b - 1, -1, -1):
            if self._books[pb].chapters:
                return ChapterAddress(pb, len(self._books[pb].chapters) - 1)
        return chapter

    def iter_addresses(self) -> Iterator[VerseAddress]:
        for b, book in enumerate(self._books):
            for c, chapter in enumerate(book.chapters):
                for v in range(len(chapter)):
                    yield VerseAddress(b, c, v)

    def first_address(self) -> Optional[VerseAddress]:
        return next(self.iter_addresses(), None)

    def next_address(self, address: VerseAddress) -> Optional[VerseAddress]:
        """
        Following verse in reading order, wrapping to the next chapter and then
        the next book. Empty chapters and books are skipped. None at the end.
        """
        self.validate(address)
        b, c, v = address.book_index, address.chapter_index, address.verse_index
        if v + 1 < len(self._books[b].chapters[c]):
            return VerseAddress(b, c, v + 1)
        c += 1
        while b < len(self._books):
            chapters = self._books[b].chapters
            while c < len(chapters):
                if chapters[c]:
                    return VerseAddress(b, c, 0)
                c += 1
            b += 1
            c = 0
        return None

    def previous_address(self, address: VerseAddress) -> Optional[VerseAddress]:
        self.validate(address)
        b, c, v = address.book_index, address.chapter_index, address.verse_index
        if v > 0:
            return VerseAddress(b, c, v - 1)
        c -= 1
        while b >= 0:
            chapters = self._books[b].chapters
            while c >= 0:
                if chapters[c]:
                    return VerseAddress(b, c, len(chapters[c]) - 1)
                c -= 1
            b -= 1
            if b >= 0:
                c = len(self._books[b].chapters) - 1
        return None


def _field(raw: dict[str, Any], *names: str) -> Any:
    for n in names:
        if n in raw:
            return raw[n]
    raise KeyError(names[0])


def _parse_book(raw: Any, pos: int) -> Book:
    if not isinstance(raw, dict):
        raise ValueError(f"book #{pos} is not an object")
    try:
        book_id = _field(raw, "id", "abbrev")
        name = _field(raw, "displayName", "display_name", "name")
        chapters = raw["chapters"]
    except KeyError as e:
        raise ValueError(f"book #{pos} is missing field {e.args[0]!r}") from None

    if not isinstance(book_id, str) or not book_id.strip():
        raise ValueError(f"book #{pos} has an invalid id")
    if not isinstance(name, str):
        raise ValueError(f"book {book_id!r} has an invalid name")
    if not isinstance(chapters, list):
        raise ValueError(f"book {book_id!r}: chapters must be a list")

    out: list[tuple[str, ...]] = []
    for ci, chapter in enumerate(chapters):
        if not isinstance(chapter, list) or not all(isinstance(v, str) for v in chapter):
            raise ValueError(f"book {book_id!r} chapter #{ci}: expected a list of strings")
        out.append(tuple(chapter))
    return Book(id=book_id, display_name=name, chapters=tuple(out))


def load_corpus(source: Union[str, Path]) -> Corpus:
    path = Path(source)
    if not path.is_file():
        raise CorpusLoadError(CorpusLoadReason.NOT_FOUND, f"Couldn't find corpus source: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorpusLoadError(CorpusLoadReason.MALFORMED, f"Couldn't decode {path}: {e}") from e

    if not isinstance(data, list) or not data:
        raise CorpusLoadError(CorpusLoadReason.MALFORMED, f"{path}: expected a non-empty list of books")

    books: list[Book] = []
    seen: set[str] = set()
    for pos, raw in enumerate(data):
        try:
            book = _parse_book(raw, pos)
        except ValueError as e:
            raise CorpusLoadError(CorpusLoadReason.MALFORMED, f"{path}: {e}") from e
        key = book.id.casefold()
        if key in seen:
            raise CorpusLoadError(CorpusLoadReason.MALFORMED, f"{path}: duplicate book id {book.id!r}")
        seen.add(key)
        books.append(book)

    corpus = Corpus(books)
    logger.debug(
        "Loaded %s books (%s verses) from %s",
        len(books),
        sum(b.verse_count for b in books),
        path,
    )
    return corpus
