from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional


# Called exactly once per utterance: None on completion, the error otherwise.
FinishedCallback = Callable[[Optional[Exception]], None]


@dataclass(frozen=True)
class SpeakRequest:
    text: str
    voice_id: Optional[str]
    rate: float


class Narrator:
    def speak(self, req: SpeakRequest, on_finished: FinishedCallback) -> None:
        raise NotImplementedError

    def cancel(self) -> None:
        raise NotImplementedError
