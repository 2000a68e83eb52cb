from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from guidepost.utils.config import get, require_positive
from guidepost.utils.geometry import center_distance, color_distance, iou, size_ratio
from guidepost.utils.logger import get_logger
from guidepost.utils.types import BoundingBox, Candidate, Color, LockState, LockStatus, LockTarget, Point


@dataclass
class LockConfig:
    max_lost_frames: int = 5
    max_search_frames: int = 30
    min_score: float = 0.25
    max_center_distance: float = 0.5
    max_size_change_ratio: float = 3.0
    velocity_decay: float = 0.7
    max_color_difference: float = 0.15
    relock_color_threshold: float = 0.10
    iou_weight: float = 0.6
    center_weight: float = 0.3
    size_weight: float = 0.1

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "LockConfig":
        kwargs = {}
        for name, default in cls().__dict__.items():
            value = get(cfg, f"lock.{name}", default)
            kwargs[name] = type(default)(value)
        out = cls(**kwargs)
        require_positive("lock.max_lost_frames", out.max_lost_frames)
        require_positive("lock.max_center_distance", out.max_center_distance)
        return out


@dataclass
class _Motion:
    """Spatial memory of the locked target; absent while searching."""

    last_box: BoundingBox
    last_center: Point
    predicted_box: BoundingBox
    predicted_center: Point
    last_area: float
    velocity: Point = (0.0, 0.0)

    @classmethod
    def seed(cls, box: BoundingBox) -> "_Motion":
        return cls(
            last_box=box,
            last_center=box.center,
            predicted_box=box,
            predicted_center=box.center,
            last_area=box.area,
        )

    def predict(self) -> None:
        vx, vy = self.velocity
        self.predicted_center = (self.last_center[0] + vx, self.last_center[1] + vy)
        self.predicted_box = self.last_box.translated(vx, vy)


class LockTracker:
    """
    Keeps one selected object locked across frames.

    LOCKED: candidates are colour-gated against the stored fingerprint, then
    scored against a velocity-extrapolated box. Short gaps are bridged by the
    prediction; after max_lost_frames misses the tracker drops its spatial
    memory and goes SEARCHING, where only a close colour match can relock.
    A search that runs past max_search_frames gives up and returns to
    UNLOCKED, leaving is_target_lost set until the next lock or unlock.
    """

    def __init__(self, cfg: LockConfig | None = None):
        self.cfg = cfg or LockConfig()
        self.logger = get_logger(__name__)
        self._status = LockStatus.UNLOCKED
        self._target: Optional[LockTarget] = None
        self._motion: Optional[_Motion] = None
        self._frames_lost = 0
        self._target_lost = False

    # ------------------ Public API --------------------
    @property
    def status(self) -> LockStatus:
        return self._status

    @property
    def is_locked(self) -> bool:
        return self._status == LockStatus.LOCKED

    @property
    def is_searching(self) -> bool:
        return self._status == LockStatus.SEARCHING

    @property
    def is_target_lost(self) -> bool:
        return self._target_lost

    @property
    def frames_lost(self) -> int:
        return self._frames_lost

    @property
    def target(self) -> Optional[LockTarget]:
        return self._target

    @property
    def state(self) -> LockState:
        motion = self._motion
        return LockState(
            status=self._status,
            target=self._target,
            frames_lost=self._frames_lost,
            predicted_center=motion.predicted_center if motion else None,
            velocity=motion.velocity if motion else (0.0, 0.0),
        )

    def lock_target(self, display_name: str, class_name: str, box: BoundingBox, color: Optional[Color] = None) -> None:
        self._status = LockStatus.LOCKED
        self._target = LockTarget(class_name=class_name.lower(), display_name=display_name, color=color)
        self._motion = _Motion.seed(box)
        self._frames_lost = 0
        self._target_lost = False
        self.logger.info("Locked onto %s (class=%s, colour=%s)", display_name, class_name.lower(), color is not None)

    def unlock(self) -> None:
        if self._status != LockStatus.UNLOCKED:
            self.logger.info("Unlocked %s", self._target.display_name if self._target else "target")
        self._status = LockStatus.UNLOCKED
        self._target = None
        self._motion = None
        self._frames_lost = 0
        self._target_lost = False

    def find_locked_target(self, candidates: Iterable[Candidate]) -> Optional[int]:
        """Index of the candidate that is the locked target this frame, or None."""
        candidates = list(candidates)
        if self._status == LockStatus.SEARCHING:
            return self._relock_by_color(candidates)
        if self._status != LockStatus.LOCKED or self._motion is None:
            return None

        self._motion.predict()
        gated = self._color_gate(candidates)
        if not gated:
            self._handle_lost_frame()
            return None

        best: Optional[Candidate] = None
        best_score = -1.0
        for cand in gated:
            score = self.score_candidate(cand.box)
            if score > best_score:
                best, best_score = cand, score

        self.logger.debug("Best candidate score %.3f over %d candidate(s)", best_score, len(gated))
        if best is not None and best_score >= self.cfg.min_score:
            self._update_tracking(best.box)
            self._frames_lost = 0
            return best.index

        self._handle_lost_frame()
        return None

    def score_candidate(self, box: BoundingBox) -> float:
        """Blend of IoU, center proximity and size similarity against the current prediction."""
        motion = self._motion
        if motion is None:
            return 0.0
        overlap = iou(box, motion.predicted_box)
        dist = center_distance(box.center, motion.predicted_center)
        center_score = max(0.0, 1.0 - dist / self.cfg.max_center_distance)
        ratio = size_ratio(box.area, motion.last_area)
        size_score = (1.0 / ratio) if ratio <= self.cfg.max_size_change_ratio else 0.0
        return self.cfg.iou_weight * overlap + self.cfg.center_weight * center_score + self.cfg.size_weight * size_score

    # ----------------- Private helpers -----------------
    def _color_gate(self, candidates: List[Candidate]) -> List[Candidate]:
        fingerprint = self._target.color if self._target else None
        if fingerprint is None:
            return candidates
        return [
            c
            for c in candidates
            if c.color is not None and color_distance(fingerprint, c.color) <= self.cfg.max_color_difference
        ]

    def _relock_by_color(self, candidates: List[Candidate]) -> Optional[int]:
        self._frames_lost += 1
        if self._frames_lost > self.cfg.max_search_frames:
            self._give_up()
            return None

        fingerprint = self._target.color if self._target else None
        if fingerprint is None:
            return None

        best: Optional[Candidate] = None
        best_diff = float("inf")
        for cand in candidates:
            if cand.color is None:
                continue
            diff = color_distance(fingerprint, cand.color)
            if diff <= self.cfg.relock_color_threshold and diff < best_diff:
                best, best_diff = cand, diff

        if best is None:
            return None

        self._status = LockStatus.LOCKED
        self._motion = _Motion.seed(best.box)
        self._frames_lost = 0
        self.logger.info("Relocked %s by colour (diff=%.3f)", self._target.display_name, best_diff)
        return best.index

    def _update_tracking(self, box: BoundingBox) -> None:
        motion = self._motion
        new_center = box.center
        decay = self.cfg.velocity_decay
        dx = new_center[0] - motion.last_center[0]
        dy = new_center[1] - motion.last_center[1]
        vx, vy = motion.velocity
        motion.velocity = (vx * decay + dx * (1.0 - decay), vy * decay + dy * (1.0 - decay))
        motion.last_box = box
        motion.last_center = new_center
        motion.last_area = box.area

    def _handle_lost_frame(self) -> None:
        self._frames_lost += 1
        if self._frames_lost >= self.cfg.max_lost_frames:
            self._enter_searching()
            return

        # Coast on the decayed prediction so short gaps stay smooth.
        motion = self._motion
        decay = self.cfg.velocity_decay
        motion.velocity = (motion.velocity[0] * decay, motion.velocity[1] * decay)
        motion.predict()
        motion.last_center = motion.predicted_center
        motion.last_box = motion.predicted_box

    def _enter_searching(self) -> None:
        self._status = LockStatus.SEARCHING
        self._motion = None
        self.logger.info(
            "Lost %s after %d frame(s); searching by colour",
            self._target.display_name if self._target else "target",
            self._frames_lost,
        )

    def _give_up(self) -> None:
        name = self._target.display_name if self._target else "target"
        self._status = LockStatus.UNLOCKED
        self._target = None
        self._motion = None
        self._target_lost = True
        self.logger.info("Search for %s abandoned after %d frame(s)", name, self._frames_lost)
