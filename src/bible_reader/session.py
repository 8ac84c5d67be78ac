from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from bible_reader.annotations.storage import JsonFileStorage, Storage
from bible_reader.annotations.store import AnnotationStore
from bible_reader.config import ReaderConfig
from bible_reader.core.navigation import NavigationResolver
from bible_reader.core.search import SearchEngine, SearchResult
from bible_reader.data.loader import Corpus, CorpusLoadError, load_corpus
from bible_reader.data.verse_index import VerseIndex


logger = logging.getLogger(__name__)


@dataclass
class ReaderSession:
    """
    Everything a front end needs for one reading session.

    When the corpus fails to load, `corpus` is None and `loading_error`
    carries the reason; nothing is raised to the caller.
    """

    config: ReaderConfig
    corpus: Optional[Corpus] = None
    index: Optional[VerseIndex] = None
    store: Optional[AnnotationStore] = None
    loading_error: Optional[str] = None
    loading_error_reason: Optional[str] = None
    search_engine: SearchEngine = field(default_factory=SearchEngine)
    resolver: NavigationResolver = field(default_factory=NavigationResolver)

    @classmethod
    def open(cls, config: ReaderConfig, *, storage: Optional[Storage] = None) -> "ReaderSession":
        session = cls(config=config)
        try:
            corpus = load_corpus(config.corpus_path)
        except CorpusLoadError as e:
            logger.error("Corpus unavailable: %s", e)
            session.loading_error = str(e)
            session.loading_error_reason = e.reason
            return session

        session.corpus = corpus
        session.index = VerseIndex.build(corpus, seed=config.seed)
        session.store = AnnotationStore(corpus, storage or JsonFileStorage(config.annotations_file))
        session.store.load_from_storage()
        return session

    @property
    def ready(self) -> bool:
        return self.corpus is not None

    def search(self, query: str) -> Optional[SearchResult]:
        if self.index is None:
            return None
        return self.search_engine.search(query, self.index)
