from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

Point = Tuple[float, float]
Vec3 = Tuple[float, float, float]
Color = Tuple[float, float, float]  # (r, g, b) in [0, 1]


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in normalized [0, 1] image coordinates."""

    x: float
    y: float
    w: float
    h: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def max_x(self) -> float:
        return self.x + self.w

    @property
    def center(self) -> Point:
        return (self.x + self.w / 2.0, self.y + self.h / 2.0)

    @property
    def area(self) -> float:
        return max(0.0, self.w) * max(0.0, self.h)

    def translated(self, dx: float, dy: float) -> "BoundingBox":
        return BoundingBox(self.x + dx, self.y + dy, self.w, self.h)


@dataclass(frozen=True)
class Detection:
    label: str
    confidence: float
    box: BoundingBox
    color: Optional[Color] = None


@dataclass(frozen=True)
class Candidate:
    box: BoundingBox
    index: int  # opaque to the tracker; maps back to the caller's list
    color: Optional[Color] = None


class LockStatus(str, Enum):
    UNLOCKED = "UNLOCKED"
    LOCKED = "LOCKED"
    SEARCHING = "SEARCHING"


@dataclass(frozen=True)
class LockTarget:
    class_name: str
    display_name: str
    color: Optional[Color] = None


@dataclass(frozen=True)
class LockState:
    status: LockStatus
    target: Optional[LockTarget] = None
    frames_lost: int = 0
    predicted_center: Optional[Point] = None
    velocity: Point = (0.0, 0.0)


@dataclass
class TrackedInstance:
    instance_id: int
    center: Point
    size: float
    last_seen: float
    frames_missed: int = 0


@dataclass
class PoseContext:
    user_position: Vec3
    target_position: Vec3
    camera_forward: Optional[Vec3] = None
    screen_point: Optional[Point] = None  # pixels
    screen_size: Tuple[float, float] = (0.0, 0.0)  # (width, height) pixels


@dataclass
class FramePacket:
    detections: List[Detection] = field(default_factory=list)
    timestamp: float = 0.0
    pose: Optional[PoseContext] = None


@dataclass
class LabeledDetection:
    detection: Detection
    instance_id: int
    label: str


@dataclass
class FrameResult:
    frame_id: int
    labeled: List[LabeledDetection] = field(default_factory=list)
    matched: Optional[LabeledDetection] = None
    lock: LockState = field(default_factory=lambda: LockState(status=LockStatus.UNLOCKED))
    instruction: Optional[str] = None
    announcement: Optional[str] = None
    stages_ms: Dict[str, float] = field(default_factory=dict)
