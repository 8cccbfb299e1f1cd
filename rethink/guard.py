from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

COOLDOWN_SECONDS = 8.0
MIN_CHARS = 8


class Verdict(str, Enum):
    accept = "accept"
    too_short = "too_short"
    empty = "empty"
    cooling_down = "cooling_down"
    duplicate = "duplicate"

    @property
    def accepted(self) -> bool:
        return self is Verdict.accept


@dataclass
class DispatchGuard:
    """Cooldown and duplicate gate in front of the /analyze call."""

    min_chars: int = MIN_CHARS
    cooldown: float = COOLDOWN_SECONDS
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    last_sent_at: float | None = None
    last_sent_text: str = ""

    def check(self, text: str, unit: str) -> Verdict:
        if len((text or "").strip()) < self.min_chars:
            return Verdict.too_short
        if not unit:
            return Verdict.empty
        if self.last_sent_at is not None and self.clock() - self.last_sent_at < self.cooldown:
            return Verdict.cooling_down
        if unit == self.last_sent_text:
            return Verdict.duplicate
        return Verdict.accept

    def admit(self, text: str, unit: str) -> Verdict:
        # Recorded before the call is awaited so a second fire cannot double-dispatch.
        verdict = self.check(text, unit)
        if verdict.accepted:
            self.last_sent_at = self.clock()
            self.last_sent_text = unit
        return verdict
