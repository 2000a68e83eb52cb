from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from guidepost.guidance.guidance_engine import GuidanceConfig, GuidanceEngine
from guidepost.guidance.lost_announcer import LostTargetAnnouncer
from guidepost.guidance.targets import parse_target_name
from guidepost.perception.tracking.identity_tracker import IdentityConfig, IdentityTracker
from guidepost.perception.tracking.lock_tracker import LockConfig, LockTracker
from guidepost.utils.config import get
from guidepost.utils.logger import get_logger
from guidepost.utils.timing import StageTimer
from guidepost.utils.types import Candidate, Detection, FramePacket, FrameResult, LabeledDetection, LockStatus, Point


@dataclass
class SessionConfig:
    min_confidence: float = 0.4
    lost_prompt_interval_s: float = 4.0

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "SessionConfig":
        return cls(
            min_confidence=float(get(cfg, "session.min_confidence", cls.min_confidence)),
            lost_prompt_interval_s=float(get(cfg, "session.lost_prompt_interval_s", cls.lost_prompt_interval_s)),
        )


class NavigationSession:
    """
    One navigation session: labels instances, follows the requested target
    and produces spoken guidance, one frame at a time.

    Not thread-safe; frames must be pushed from a single serialized path.
    """

    def __init__(self, cfg: Dict[str, Any] | None = None):
        cfg = cfg or {}
        self.cfg = SessionConfig.from_config(cfg)
        self.logger = get_logger(__name__)
        self.identity = IdentityTracker(IdentityConfig.from_config(cfg))
        self.lock = LockTracker(LockConfig.from_config(cfg))
        self.guidance = GuidanceEngine(GuidanceConfig.from_config(cfg))
        self.announcer = LostTargetAnnouncer(self.cfg.lost_prompt_interval_s)
        self.target_name: Optional[str] = None

    def request_target(self, display_name: str) -> None:
        """Start a new target session; the target is picked on the next frame."""
        self.logger.info("Target requested: %s", display_name)
        self.target_name = display_name
        self.lock.unlock()
        self.guidance.reset()
        self.announcer.reset()

    def clear_target(self) -> None:
        self.logger.info("Target cleared")
        self.target_name = None
        self.lock.unlock()
        self.identity.reset()
        self.guidance.reset()
        self.announcer.reset()

    def process_frame(self, frame_id: int, packet: FramePacket) -> FrameResult:
        timer = StageTimer()
        now = packet.timestamp
        detections = [d for d in packet.detections if d.confidence > self.cfg.min_confidence]

        t0 = time.perf_counter()
        labeled = self._label_instances(detections, now)
        timer.mark("identity", t0)

        t1 = time.perf_counter()
        was_unlocked = self.lock.status == LockStatus.UNLOCKED
        matched = self._follow_target(labeled) if self.target_name else None
        timer.mark("lock", t1)

        t2 = time.perf_counter()
        instruction = None
        announcement = None
        if self.target_name:
            instruction = self._guide(packet, matched, now)
            announcement = self._announce(matched, now, newly_locked=was_unlocked and self.lock.is_locked)
        timer.mark("guidance", t2)

        return FrameResult(
            frame_id=frame_id,
            labeled=labeled,
            matched=matched,
            lock=self.lock.state,
            instruction=instruction,
            announcement=announcement,
            stages_ms=timer.stages_ms,
        )

    # ----------------- Private helpers -----------------
    def _label_instances(self, detections: List[Detection], now: float) -> List[LabeledDetection]:
        by_class: Dict[str, List[Detection]] = defaultdict(list)
        for det in sorted(detections, key=lambda d: d.box.min_x):
            by_class[det.label.lower()].append(det)

        labeled: List[LabeledDetection] = []
        for class_name, dets in by_class.items():
            ids = [self.identity.assign(class_name, d.box.center, d.box.area, now=now) for d in dets]
            self.identity.mark_frame_end(class_name, [d.box.center for d in dets])
            for det, instance_id in zip(dets, ids):
                labeled.append(LabeledDetection(det, instance_id, self.identity.label_for(class_name, instance_id)))
        return labeled

    def _follow_target(self, labeled: List[LabeledDetection]) -> Optional[LabeledDetection]:
        class_name, ordinal = parse_target_name(self.target_name)
        candidates = [item for item in labeled if item.detection.label.lower() == class_name]

        if self.lock.status == LockStatus.UNLOCKED:
            if self.lock.is_target_lost or ordinal > len(candidates):
                return None
            selected = sorted(candidates, key=lambda item: item.detection.box.min_x)[ordinal - 1]
            det = selected.detection
            self.lock.lock_target(self.target_name, class_name, det.box, det.color)
            return selected

        idx = self.lock.find_locked_target(
            Candidate(box=item.detection.box, index=i, color=item.detection.color) for i, item in enumerate(candidates)
        )
        return candidates[idx] if idx is not None else None

    def _guide(self, packet: FramePacket, matched: Optional[LabeledDetection], now: float) -> Optional[str]:
        pose = packet.pose
        if pose is None or self.lock.status == LockStatus.UNLOCKED:
            return None
        screen_point: Optional[Point] = pose.screen_point
        width, height = pose.screen_size
        if screen_point is None and matched is not None and width > 0:
            cx, cy = matched.detection.box.center
            screen_point = (cx * width, cy * height)
        return self.guidance.get_guidance(
            pose.user_position,
            pose.target_position,
            screen_point,
            pose.screen_size,
            camera_forward=pose.camera_forward,
            now=now,
        )

    def _announce(self, matched: Optional[LabeledDetection], now: float, newly_locked: bool = False) -> Optional[str]:
        if matched is not None:
            self.announcer.target_visible()
            return f"Locked onto {self.target_name}" if newly_locked else None
        if self.lock.is_searching or self.lock.is_target_lost:
            return self.announcer.target_missing(self.target_name, now=now)
        return None
