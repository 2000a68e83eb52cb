from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from guidepost.guidance.formatting import format_distance
from guidepost.utils.config import get, require_positive
from guidepost.utils.geometry import distance_3d, ground_bearing
from guidepost.utils.logger import get_logger
from guidepost.utils.timing import resolve_now
from guidepost.utils.types import Point

TURN_LEFT = "Turn left"
TURN_RIGHT = "Turn right"
MOVE_FORWARD = "Move forward"
BEHIND_YOU = "Target is behind you. Turn around."


@dataclass
class GuidanceConfig:
    nagging_interval_s: float = 2.5
    distance_change_m: float = 0.5
    left_threshold: float = 0.35
    right_threshold: float = 0.65
    center_enter_min: float = 0.40
    center_enter_max: float = 0.60
    forward_angle_deg: float = 10.0
    behind_angle_deg: float = 135.0

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "GuidanceConfig":
        kwargs = {name: float(get(cfg, f"guidance.{name}", default)) for name, default in cls().__dict__.items()}
        out = cls(**kwargs)
        require_positive("guidance.nagging_interval_s", out.nagging_interval_s)
        if not (out.left_threshold <= out.center_enter_min <= out.center_enter_max <= out.right_threshold):
            raise ValueError("guidance bands must satisfy left <= center_enter_min <= center_enter_max <= right")
        return out


class GuidanceEngine:
    """
    Turns the locked target's position into at most one spoken instruction
    per call.

    Direction and distance are separate rate-limited channels. Direction is
    repeated on a fixed cadence while it applies; centred/off-centre
    hysteresis keeps it from flapping at the screen band edges.
    """

    def __init__(self, cfg: GuidanceConfig | None = None):
        self.cfg = cfg or GuidanceConfig()
        self.logger = get_logger(__name__)
        self.reset()

    def reset(self) -> None:
        self.last_direction: Optional[str] = None
        self.last_distance: Optional[float] = None
        self._last_direction_time: Optional[float] = None
        self._last_distance_time: Optional[float] = None
        self.centered = True

    def get_guidance(
        self,
        user_position: Sequence[float],
        target_position: Sequence[float],
        screen_point: Optional[Point],
        screen_size: Tuple[float, float],
        camera_forward: Optional[Sequence[float]] = None,
        now: Optional[float] = None,
    ) -> Optional[str]:
        now = resolve_now(now)
        distance = distance_3d(user_position, target_position)

        direction = self.direction_guidance(
            screen_point, screen_size, user_position, target_position, camera_forward, now
        )
        if direction is not None and direction != MOVE_FORWARD:
            return direction

        distance_msg = self.distance_guidance(distance, now)
        if distance_msg is not None:
            return distance_msg
        return direction

    # ----------------- Direction -----------------
    def direction_guidance(
        self,
        screen_point: Optional[Point],
        screen_size: Tuple[float, float],
        user_position: Sequence[float],
        target_position: Sequence[float],
        camera_forward: Optional[Sequence[float]] = None,
        now: Optional[float] = None,
    ) -> Optional[str]:
        now = resolve_now(now)
        if self._last_direction_time is not None and now - self._last_direction_time < self.cfg.nagging_interval_s:
            return None

        width = screen_size[0] if screen_size else 0.0
        if screen_point is not None and width > 0:
            return self._screen_direction(screen_point[0] / width, now)

        to_target = [t - u for t, u in zip(target_position, user_position)]
        forward = camera_forward if camera_forward is not None else (0.0, 0.0, -1.0)
        return self._bearing_direction(forward, to_target, now)

    def _screen_direction(self, x: float, now: float) -> Optional[str]:
        cfg = self.cfg
        if self.centered:
            if x < cfg.left_threshold:
                self._set_centered(False)
                return self._speak(TURN_LEFT, now)
            if x > cfg.right_threshold:
                self._set_centered(False)
                return self._speak(TURN_RIGHT, now)
            return self._speak(MOVE_FORWARD, now)

        if cfg.center_enter_min <= x <= cfg.center_enter_max:
            self._set_centered(True)
            return self._speak(MOVE_FORWARD, now)
        if x < cfg.left_threshold:
            return self._speak(TURN_LEFT, now)
        if x > cfg.right_threshold:
            return self._speak(TURN_RIGHT, now)
        return None

    def _bearing_direction(self, forward: Sequence[float], to_target: Sequence[float], now: float) -> str:
        angle, cross = ground_bearing(forward, to_target)
        if angle > self.cfg.behind_angle_deg:
            self._set_centered(False)
            return self._speak(BEHIND_YOU, now)
        if angle < self.cfg.forward_angle_deg:
            self._set_centered(True)
            return self._speak(MOVE_FORWARD, now)
        self._set_centered(False)
        return self._speak(TURN_RIGHT if cross > 0 else TURN_LEFT, now)

    def _set_centered(self, value: bool) -> None:
        if value != self.centered:
            self.logger.debug("Target %s", "centred" if value else "off-centre")
        self.centered = value

    def _speak(self, direction: str, now: float) -> str:
        self.last_direction = direction
        self._last_direction_time = now
        return direction

    # ----------------- Distance -----------------
    def distance_guidance(self, distance: float, now: Optional[float] = None) -> Optional[str]:
        now = resolve_now(now)
        changed = self.last_distance is None or abs(distance - self.last_distance) >= self.cfg.distance_change_m
        elapsed = self._last_distance_time is None or now - self._last_distance_time >= self.cfg.nagging_interval_s
        if not (changed or elapsed):
            return None
        self.last_distance = distance
        self._last_distance_time = now
        return format_distance(distance)
