from __future__ import annotations

from typing import Optional

from guidepost.utils.timing import resolve_now

TARGET_LOST = "Target lost"


class LostTargetAnnouncer:
    """'Target lost' once, then a turn-around prompt every repeat_interval_s."""

    def __init__(self, repeat_interval_s: float = 4.0):
        self.repeat_interval_s = repeat_interval_s
        self.reset()

    def reset(self) -> None:
        self.announced = False
        self._last_prompt_time: Optional[float] = None

    def target_visible(self) -> None:
        self.reset()

    def target_missing(self, display_name: str, now: Optional[float] = None) -> Optional[str]:
        now = resolve_now(now)
        if not self.announced:
            self.announced = True
            self._last_prompt_time = now
            return TARGET_LOST
        if now - self._last_prompt_time > self.repeat_interval_s:
            self._last_prompt_time = now
            return f"Please turn around to find {display_name}"
        return None
