import json
from pathlib import Path

import pytest

from bible_reader.data.loader import Corpus, load_corpus


SAMPLE_BOOKS = [
    {
        "abbrev": "gn",
        "name": "Genesis",
        "chapters": [
            ["In the beginning God created the heaven and the earth.", "And the earth was without form, and void."],
            ["Thus the heavens and the earth were finished."],
        ],
    },
    {
        "abbrev": "ps",
        "name": "Psalms",
        "chapters": [[], ["The LORD is my shepherd; I shall not want.", ""]],
    },
    {"abbrev": "ob", "name": "Obadiah", "chapters": []},
    {
        "abbrev": "1jn",
        "name": "1 John",
        "chapters": [["God is love.", "Thou shalt love thy neighbor as thyself.", "LOVE GOD with all thy heart."]],
    },
]


@pytest.fixture
def corpus_path(tmp_path: Path) -> Path:
    path = tmp_path / "kjv.json"
    path.write_text(json.dumps(SAMPLE_BOOKS), encoding="utf-8")
    return path


@pytest.fixture
def corpus(corpus_path: Path) -> Corpus:
    return load_corpus(corpus_path)
