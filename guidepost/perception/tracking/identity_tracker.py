from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from guidepost.utils.config import get, require_positive
from guidepost.utils.geometry import center_distance, size_ratio
from guidepost.utils.logger import get_logger
from guidepost.utils.timing import resolve_now
from guidepost.utils.types import Point, TrackedInstance


@dataclass
class IdentityConfig:
    fast_match_distance: float = 0.15
    same_object_distance: float = 0.35
    max_size_ratio: float = 4.0
    max_missed_frames: int = 60
    max_memory_s: float = 10.0

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "IdentityConfig":
        out = cls(
            fast_match_distance=float(get(cfg, "identity.fast_match_distance", cls.fast_match_distance)),
            same_object_distance=float(get(cfg, "identity.same_object_distance", cls.same_object_distance)),
            max_size_ratio=float(get(cfg, "identity.max_size_ratio", cls.max_size_ratio)),
            max_missed_frames=int(get(cfg, "identity.max_missed_frames", cls.max_missed_frames)),
            max_memory_s=float(get(cfg, "identity.max_memory_s", cls.max_memory_s)),
        )
        require_positive("identity.same_object_distance", out.same_object_distance)
        require_positive("identity.max_memory_s", out.max_memory_s)
        return out


class IdentityTracker:
    """
    Stable per-class integer ids for same-class instances across frames,
    so "chair 1" and "chair 2" keep their numbers while detections flicker.

    Per frame, call assign() for each detection of a class, then
    mark_frame_end() once for that class with all of its visible centers.
    """

    def __init__(self, cfg: IdentityConfig | None = None):
        self.cfg = cfg or IdentityConfig()
        self.logger = get_logger(__name__)
        self._counters: Dict[str, int] = {}
        self._known: Dict[str, List[TrackedInstance]] = {}

    def assign(self, class_name: str, center: Point, size: float, now: Optional[float] = None) -> int:
        key = class_name.lower()
        now = resolve_now(now)
        known = self._known.get(key, [])

        best: Optional[TrackedInstance] = None
        best_dist = float("inf")
        for inst in known:
            dist = center_distance(center, inst.center)
            if dist < self.cfg.fast_match_distance:
                self._refresh(inst, center, size, now)
                return inst.instance_id
            if dist < self.cfg.same_object_distance and dist < best_dist:
                if size_ratio(size, inst.size) < self.cfg.max_size_ratio:
                    best, best_dist = inst, dist

        if best is not None:
            self._refresh(best, center, size, now)
            return best.instance_id

        self._purge_stale(key, now)
        next_id = self._counters.get(key, 0) + 1
        self._counters[key] = next_id
        self._known.setdefault(key, []).append(TrackedInstance(next_id, center, size, last_seen=now))
        self.logger.debug("New %s instance id=%d at (%.3f, %.3f)", key, next_id, center[0], center[1])
        return next_id

    def mark_frame_end(self, class_name: str, visible_centers: Iterable[Point]) -> None:
        known = self._known.get(class_name.lower())
        if not known:
            return
        centers = list(visible_centers)
        for inst in known:
            seen = any(center_distance(c, inst.center) < self.cfg.same_object_distance for c in centers)
            if not seen:
                inst.frames_missed += 1

    def reset(self) -> None:
        self._counters.clear()
        self._known.clear()

    def count_for_class(self, class_name: str) -> int:
        return self._counters.get(class_name.lower(), 0)

    def visible_count(self, class_name: str) -> int:
        return sum(1 for inst in self._known.get(class_name.lower(), []) if inst.frames_missed == 0)

    def instances(self, class_name: str) -> List[TrackedInstance]:
        return list(self._known.get(class_name.lower(), []))

    def label_for(self, class_name: str, instance_id: int) -> str:
        name = class_name.replace("_", " ").title()
        if self.count_for_class(class_name) > 1:
            return f"{name} {instance_id}"
        return name

    @staticmethod
    def _refresh(inst: TrackedInstance, center: Point, size: float, now: float) -> None:
        inst.center = center
        inst.size = size
        inst.last_seen = now
        inst.frames_missed = 0

    def _purge_stale(self, key: str, now: float) -> None:
        known = self._known.get(key)
        if not known:
            return
        kept = [
            inst
            for inst in known
            if (now - inst.last_seen) < self.cfg.max_memory_s and inst.frames_missed < self.cfg.max_missed_frames
        ]
        if len(kept) != len(known):
            self.logger.debug("Purged %d stale %s instance(s)", len(known) - len(kept), key)
        self._known[key] = kept
