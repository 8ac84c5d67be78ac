from __future__ import annotations

import logging
from typing import Callable, List, Optional

from bible_reader.config import PlaybackConfig
from bible_reader.data.loader import Corpus
from bible_reader.narration.base import Narrator, SpeakRequest
from bible_reader.playback.scheduler import SerialScheduler
from bible_reader.utils.address import VerseAddress


logger = logging.getLogger(__name__)

PositionListener = Callable[[Optional[VerseAddress]], None]


class PlaybackState:
    IDLE = "idle"
    READING = "reading"


class PlaybackCoordinator:
    """
    Reads the corpus aloud verse by verse.

    States are Idle and Reading(address). Each narration completion (or
    error) advances to the next verse, wrapping across chapters and books,
    until the end of the corpus. At most one speak request is outstanding.

    Every start() and stop() bumps a generation counter; callbacks carry the
    generation they were issued under and are dropped when it no longer
    matches, so a late completion cannot revive a stopped reading.
    """

    def __init__(
        self,
        corpus: Corpus,
        narrator: Narrator,
        cfg: Optional[PlaybackConfig] = None,
        *,
        scheduler: Optional[SerialScheduler] = None,
    ) -> None:
        self.corpus = corpus
        self.narrator = narrator
        self.cfg = cfg or PlaybackConfig()
        self.scheduler = scheduler
        self.spoken_count = 0
        self._address: Optional[VerseAddress] = None
        self._generation = 0
        self._in_flight = False
        self._listeners: List[PositionListener] = []

    @property
    def state(self) -> str:
        return PlaybackState.IDLE if self._address is None else PlaybackState.READING

    @property
    def is_reading(self) -> bool:
        return self._address is not None

    @property
    def current_address(self) -> Optional[VerseAddress]:
        return self._address

    def add_listener(self, fn: PositionListener) -> None:
        self._listeners.append(fn)

    def _set_address(self, address: Optional[VerseAddress]) -> None:
        self._address = address
        for fn in list(self._listeners):
            if self._address != address:
                break
            fn(address)

    def start(self, from_address: VerseAddress) -> None:
        self.corpus.validate(from_address)
        self.stop()
        self._generation += 1
        self._set_address(from_address)
        self._speak(self._generation)

    def stop(self) -> None:
        if self._address is None:
            return
        self._generation += 1
        if self._in_flight:
            self._in_flight = False
            self.narrator.cancel()
        self._set_address(None)

    def _speak(self, generation: int) -> None:
        address = self._address
        if generation != self._generation or address is None:
            return
        req = SpeakRequest(
            text=self.corpus.verse_text(address),
            voice_id=self.cfg.voice_id,
            rate=self.cfg.rate,
        )
        self._in_flight = True
        self.spoken_count += 1
        self.narrator.speak(req, lambda error: self._on_finished(generation, address, error))

    def _on_finished(self, generation: int, address: VerseAddress, error: Optional[Exception]) -> None:
        if generation != self._generation or address != self._address or not self._in_flight:
            logger.debug("Ignoring stale narration callback for %s", address)
            return
        self._in_flight = False
        if error is not None:
            logger.warning("Narration failed at %s, continuing: %s", self.corpus.reference(address), error)

        nxt = self.corpus.next_address(address)
        if nxt is None:
            logger.info("Reached the end of the corpus")
            self._generation += 1
            self._set_address(None)
            return

        crossed = (nxt.book_index, nxt.chapter_index) != (address.book_index, address.chapter_index)
        pause = self.cfg.chapter_pause_s if crossed else self.cfg.verse_pause_s
        self._set_address(nxt)
        if self.scheduler is None:
            self._speak(generation)
        else:
            self.scheduler.call_later(pause, lambda: self._speak(generation))
