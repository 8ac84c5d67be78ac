from bible_reader.annotations.storage import MemoryStorage
from bible_reader.annotations.store import STORAGE_KEY, AnnotationKind
from bible_reader.config import ReaderConfig
from bible_reader.data.loader import CorpusLoadReason
from bible_reader.session import ReaderSession
from bible_reader.utils.address import VerseAddress


def test_open_wires_components(corpus_path) -> None:
    storage = MemoryStorage()
    session = ReaderSession.open(ReaderConfig(corpus_path=str(corpus_path)), storage=storage)
    assert session.ready
    assert session.loading_error is None
    assert len(session.index) == 8

    result = session.search("love god")
    assert [e.ref for e in result.entries] == ["1 John 1:1", "1 John 1:3"]

    session.store.upsert(AnnotationKind.FAVORITE, VerseAddress(0, 0, 0))
    assert STORAGE_KEY in storage.blobs


def test_missing_corpus_is_reported_not_raised(tmp_path) -> None:
    session = ReaderSession.open(ReaderConfig(corpus_path=str(tmp_path / "missing.json")))
    assert not session.ready
    assert session.loading_error_reason == CorpusLoadReason.NOT_FOUND
    assert "missing.json" in session.loading_error
    assert session.search("love god") is None


def test_unreadable_annotations_do_not_block_the_session(corpus_path) -> None:
    storage = MemoryStorage({STORAGE_KEY: "{"})
    session = ReaderSession.open(ReaderConfig(corpus_path=str(corpus_path)), storage=storage)
    assert session.ready
    assert len(session.store) == 0
    assert session.store.persistence_error


def test_non_object_annotation_rows_do_not_block_the_session(corpus_path) -> None:
    storage = MemoryStorage({STORAGE_KEY: '["x"]'})
    session = ReaderSession.open(ReaderConfig(corpus_path=str(corpus_path)), storage=storage)
    assert session.ready
    assert len(session.store) == 0
    assert "Invalid annotation row" in session.store.persistence_error
