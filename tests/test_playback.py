from typing import List, Optional

import pytest

from bible_reader.config import PlaybackConfig
from bible_reader.narration.base import FinishedCallback, Narrator, SpeakRequest
from bible_reader.narration.console import ConsoleNarrator, ConsoleNarratorOptions
from bible_reader.playback.coordinator import PlaybackCoordinator, PlaybackState
from bible_reader.playback.scheduler import SerialScheduler
from bible_reader.utils.address import InvalidAddressError, VerseAddress


class FakeNarrator(Narrator):
    """Records requests; the test decides when each one finishes."""

    def __init__(self) -> None:
        self.requests: List[SpeakRequest] = []
        self.callbacks: List[FinishedCallback] = []
        self.cancels = 0

    def speak(self, req: SpeakRequest, on_finished: FinishedCallback) -> None:
        self.requests.append(req)
        self.callbacks.append(on_finished)

    def cancel(self) -> None:
        self.cancels += 1

    def finish(self, index: int = -1, error: Optional[Exception] = None) -> None:
        self.callbacks[index](error)


class FakeClock:
    def __init__(self) -> None:
        self.t = 0.0
        self.sleeps: List[float] = []

    def time(self) -> float:
        return self.t

    def sleep(self, s: float) -> None:
        self.sleeps.append(s)
        self.t += s


LAST = VerseAddress(3, 0, 2)


def test_initial_state_is_idle(corpus) -> None:
    c = PlaybackCoordinator(corpus, FakeNarrator())
    assert c.state == PlaybackState.IDLE
    assert c.current_address is None


def test_start_speaks_first_verse(corpus) -> None:
    narrator = FakeNarrator()
    c = PlaybackCoordinator(corpus, narrator, PlaybackConfig(voice_id="en-US", rate=0.4))
    c.start(VerseAddress(0, 0, 0))
    assert c.state == PlaybackState.READING
    assert c.current_address == VerseAddress(0, 0, 0)
    assert narrator.requests == [
        SpeakRequest(text="In the beginning God created the heaven and the earth.", voice_id="en-US", rate=0.4)
    ]


def test_completion_advances_across_chapters_and_books(corpus) -> None:
    narrator = FakeNarrator()
    c = PlaybackCoordinator(corpus, narrator)
    c.start(VerseAddress(0, 0, 1))
    narrator.finish()
    assert c.current_address == VerseAddress(0, 1, 0)
    narrator.finish()
    assert c.current_address == VerseAddress(1, 1, 0)
    narrator.finish()
    narrator.finish()
    assert c.current_address == VerseAddress(3, 0, 0)
    assert narrator.requests[-1].text == "God is love."
    assert len(narrator.requests) == 5


def test_last_verse_goes_idle_without_another_request(corpus) -> None:
    narrator = FakeNarrator()
    c = PlaybackCoordinator(corpus, narrator)
    c.start(LAST)
    narrator.finish()
    assert c.state == PlaybackState.IDLE
    assert c.current_address is None
    assert len(narrator.requests) == 1


def test_stop_then_late_completion_stays_idle(corpus) -> None:
    narrator = FakeNarrator()
    c = PlaybackCoordinator(corpus, narrator)
    c.start(VerseAddress(0, 0, 0))
    c.stop()
    assert c.state == PlaybackState.IDLE
    assert narrator.cancels == 1
    narrator.finish(0)
    assert c.state == PlaybackState.IDLE
    assert len(narrator.requests) == 1


def test_stop_is_idempotent(corpus) -> None:
    narrator = FakeNarrator()
    c = PlaybackCoordinator(corpus, narrator)
    c.stop()
    c.start(VerseAddress(0, 0, 0))
    c.stop()
    c.stop()
    assert narrator.cancels == 1


def test_restart_ignores_completion_from_previous_run(corpus) -> None:
    narrator = FakeNarrator()
    c = PlaybackCoordinator(corpus, narrator)
    c.start(VerseAddress(0, 0, 0))
    c.start(VerseAddress(3, 0, 0))
    narrator.finish(0)
    assert c.current_address == VerseAddress(3, 0, 0)
    assert len(narrator.requests) == 2
    narrator.finish(1)
    assert c.current_address == VerseAddress(3, 0, 1)


def test_duplicate_completion_is_ignored(corpus) -> None:
    narrator = FakeNarrator()
    c = PlaybackCoordinator(corpus, narrator)
    c.start(VerseAddress(0, 0, 0))
    narrator.finish(0)
    narrator.finish(0)
    assert c.current_address == VerseAddress(0, 0, 1)
    assert len(narrator.requests) == 2


def test_narration_error_advances_like_completion(corpus) -> None:
    narrator = FakeNarrator()
    c = PlaybackCoordinator(corpus, narrator)
    c.start(VerseAddress(0, 0, 0))
    narrator.finish(error=RuntimeError("voice unavailable"))
    assert c.current_address == VerseAddress(0, 0, 1)
    assert len(narrator.requests) == 2


def test_position_is_reported_before_speaking(corpus) -> None:
    seen = []
    narrator = FakeNarrator()
    c = PlaybackCoordinator(corpus, narrator)
    c.add_listener(lambda pos: seen.append((pos, len(narrator.requests))))
    c.start(VerseAddress(3, 0, 1))
    narrator.finish()
    narrator.finish()
    assert seen == [
        (VerseAddress(3, 0, 1), 0),
        (VerseAddress(3, 0, 2), 1),
        (None, 2),
    ]


def test_invalid_start_address_is_rejected(corpus) -> None:
    c = PlaybackCoordinator(corpus, FakeNarrator())
    with pytest.raises(InvalidAddressError):
        c.start(VerseAddress(1, 0, 0))
    assert c.state == PlaybackState.IDLE


def test_chapter_wrap_is_paced_through_the_scheduler(corpus) -> None:
    clock = FakeClock()
    scheduler = SerialScheduler(clock=clock.time, sleep=clock.sleep)
    narrator = FakeNarrator()
    cfg = PlaybackConfig(verse_pause_s=0.0, chapter_pause_s=0.75)
    c = PlaybackCoordinator(corpus, narrator, cfg, scheduler=scheduler)

    c.start(VerseAddress(0, 0, 1))
    narrator.finish()
    # Position moves immediately; the speak request waits for the pause.
    assert c.current_address == VerseAddress(0, 1, 0)
    assert len(narrator.requests) == 1
    scheduler.run()
    assert len(narrator.requests) == 2
    assert clock.sleeps == [0.75]


def test_stop_during_pause_drops_pending_request(corpus) -> None:
    clock = FakeClock()
    scheduler = SerialScheduler(clock=clock.time, sleep=clock.sleep)
    narrator = FakeNarrator()
    c = PlaybackCoordinator(corpus, narrator, scheduler=scheduler)
    c.start(VerseAddress(0, 0, 1))
    narrator.finish()
    c.stop()
    scheduler.run()
    assert len(narrator.requests) == 1
    assert c.state == PlaybackState.IDLE


def test_console_narrator_reads_to_the_end(corpus) -> None:
    lines = []
    clock = FakeClock()
    scheduler = SerialScheduler(clock=clock.time, sleep=clock.sleep)
    narrator = ConsoleNarrator(scheduler, write=lines.append)
    c = PlaybackCoordinator(corpus, narrator, PlaybackConfig(chapter_pause_s=0.0), scheduler=scheduler)
    c.start(VerseAddress(0, 0, 0))
    scheduler.run()
    assert c.state == PlaybackState.IDLE
    assert c.spoken_count == 8
    assert lines[0].startswith("In the beginning")
    assert lines[-1] == "LOVE GOD with all thy heart."


def test_console_narrator_failures_do_not_stall(corpus) -> None:
    scheduler = SerialScheduler(sleep=lambda s: None)
    narrator = ConsoleNarrator(scheduler, ConsoleNarratorOptions(mode="fail"))
    c = PlaybackCoordinator(corpus, narrator, PlaybackConfig(chapter_pause_s=0.0), scheduler=scheduler)
    c.start(VerseAddress(3, 0, 0))
    scheduler.run()
    assert c.spoken_count == 3
    assert c.state == PlaybackState.IDLE


def test_console_narrator_cancel_suppresses_completion(corpus) -> None:
    scheduler = SerialScheduler(sleep=lambda s: None)
    narrator = ConsoleNarrator(scheduler, ConsoleNarratorOptions(mode="silent"))
    c = PlaybackCoordinator(corpus, narrator, scheduler=scheduler)
    c.start(VerseAddress(0, 0, 0))
    c.stop()
    assert scheduler.run() == 1
    assert c.spoken_count == 1
    assert c.state == PlaybackState.IDLE


def test_console_narrator_rejects_unknown_mode() -> None:
    with pytest.raises(ValueError):
        ConsoleNarrator(SerialScheduler(), ConsoleNarratorOptions(mode="shout"))
