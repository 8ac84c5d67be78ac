from __future__ import annotations

from dataclasses import dataclass, field

from bible_reader.data.verse_index import VerseIndex, VerseIndexEntry


MIN_QUERY_TOKENS = 2


class SearchStatus:
    OK = "ok"
    INSUFFICIENT_QUERY = "insufficient_query"


@dataclass(frozen=True)
class SearchResult:
    status: str
    tokens: tuple[str, ...] = ()
    entries: tuple[VerseIndexEntry, ...] = field(default_factory=tuple)

    @property
    def insufficient(self) -> bool:
        return self.status == SearchStatus.INSUFFICIENT_QUERY

    def __len__(self) -> int:
        return len(self.entries)


def tokenize(query: str) -> tuple[str, ...]:
    return tuple(t for t in query.lower().split() if t)


class SearchEngine:
    """
    Conjunctive substring filter over a VerseIndex.

    A verse matches when its lowercased text contains every query word as a
    plain substring. Results keep index order; nothing is ranked.
    """

    def __init__(self, min_tokens: int = MIN_QUERY_TOKENS) -> None:
        self.min_tokens = min_tokens

    def search(self, query: str, index: VerseIndex) -> SearchResult:
        tokens = tokenize(query)
        if len(tokens) < self.min_tokens:
            return SearchResult(status=SearchStatus.INSUFFICIENT_QUERY, tokens=tokens)

        hits = []
        for entry in index.all():
            lower = entry.text.lower()
            if all(t in lower for t in tokens):
                hits.append(entry)
        return SearchResult(status=SearchStatus.OK, tokens=tokens, entries=tuple(hits))
