from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


DEFAULT_CORPUS_PATH = "data/kjv.json"
DEFAULT_ANNOTATIONS_PATH = "~/.bible-reader/annotations.json"


@dataclass(frozen=True)
class PlaybackConfig:
    voice_id: Optional[str] = None
    rate: float = 0.5
    verse_pause_s: float = 0.0
    chapter_pause_s: float = 0.75


@dataclass(frozen=True)
class ReaderConfig:
    corpus_path: str = DEFAULT_CORPUS_PATH
    annotations_path: str = DEFAULT_ANNOTATIONS_PATH
    seed: Optional[int] = None
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)

    @property
    def annotations_file(self) -> Path:
        return Path(self.annotations_path).expanduser()

    @classmethod
    def from_dict(cls, cfg: dict[str, Any]) -> "ReaderConfig":
        corpus = cfg.get("corpus", {}) or {}
        annotations = cfg.get("annotations", {}) or {}
        playback = cfg.get("playback", {}) or {}
        seed = cfg.get("seed")
        voice_id = playback.get("voice_id")
        return cls(
            corpus_path=str(corpus.get("path", DEFAULT_CORPUS_PATH)),
            annotations_path=str(annotations.get("path", DEFAULT_ANNOTATIONS_PATH)),
            seed=None if seed is None else int(seed),
            playback=PlaybackConfig(
                voice_id=None if voice_id is None else str(voice_id),
                rate=float(playback.get("rate", 0.5)),
                verse_pause_s=float(playback.get("verse_pause_s", 0.0)),
                chapter_pause_s=float(playback.get("chapter_pause_s", 0.75)),
            ),
        )


def load_config(path: Optional[str]) -> ReaderConfig:
    if path is None:
        return ReaderConfig()
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config (expected mapping): {path}")
    return ReaderConfig.from_dict(data)
