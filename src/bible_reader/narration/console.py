from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from bible_reader.narration.base import FinishedCallback, Narrator, SpeakRequest
from bible_reader.playback.scheduler import SerialScheduler


class NarrationError(RuntimeError):
    pass


@dataclass(frozen=True)
class ConsoleNarratorOptions:
    """
    Stand-in narrator for terminals and smoke tests.

    modes:
      - echo: print the utterance, then report completion
      - silent: report completion without printing
      - fail: report an error for every utterance
    """

    mode: str = "echo"
    prefix: str = ""


class ConsoleNarrator(Narrator):
    def __init__(
        self,
        scheduler: SerialScheduler,
        opts: Optional[ConsoleNarratorOptions] = None,
        *,
        write: Callable[[str], None] = print,
    ) -> None:
        if opts is not None and opts.mode not in {"echo", "silent", "fail"}:
            raise ValueError(f"Unknown console narrator mode: {opts.mode!r}")
        self.scheduler = scheduler
        self.opts = opts or ConsoleNarratorOptions()
        self._write = write
        self._pending: Optional[FinishedCallback] = None

    def speak(self, req: SpeakRequest, on_finished: FinishedCallback) -> None:
        if self.opts.mode == "echo":
            self._write(f"{self.opts.prefix}{req.text}")
        self._pending = on_finished
        error = NarrationError("console narrator configured to fail") if self.opts.mode == "fail" else None
        self.scheduler.call_soon(lambda: self._finish(on_finished, error))

    def _finish(self, cb: FinishedCallback, error: Optional[Exception]) -> None:
        # Cancelled utterances never report.
        if self._pending is not cb:
            return
        self._pending = None
        cb(error)

    def cancel(self) -> None:
        self._pending = None
