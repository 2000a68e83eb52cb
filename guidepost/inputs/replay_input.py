from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Tuple

import yaml

from guidepost.inputs.base_input import BaseInput
from guidepost.utils.logger import get_logger
from guidepost.utils.types import BoundingBox, Detection, FramePacket, PoseContext


@dataclass
class ReplayMeta:
    fps: float
    frame_count: int


def _triple(value: Any, field_name: str) -> Optional[Tuple[float, float, float]]:
    if value is None:
        return None
    if len(value) != 3:
        raise ValueError(f"{field_name} must have 3 components, got {value!r}")
    return (float(value[0]), float(value[1]), float(value[2]))


def parse_detection(raw: Dict[str, Any]) -> Detection:
    try:
        x, y, w, h = (float(v) for v in raw["box"])
        return Detection(
            label=str(raw["label"]),
            confidence=float(raw.get("confidence", 1.0)),
            box=BoundingBox(x, y, w, h),
            color=_triple(raw.get("color"), "color"),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed detection record: {raw!r}") from exc


def parse_pose(raw: Optional[Dict[str, Any]]) -> Optional[PoseContext]:
    if not raw:
        return None
    try:
        screen_point = raw.get("screen_point")
        screen_size = raw.get("screen_size") or (0.0, 0.0)
        return PoseContext(
            user_position=_triple(raw["user_position"], "user_position"),
            target_position=_triple(raw["target_position"], "target_position"),
            camera_forward=_triple(raw.get("camera_forward"), "camera_forward"),
            screen_point=(float(screen_point[0]), float(screen_point[1])) if screen_point is not None else None,
            screen_size=(float(screen_size[0]), float(screen_size[1])),
        )
    except (KeyError, TypeError, IndexError) as exc:
        raise ValueError(f"Malformed pose record: {raw!r}") from exc


def parse_frame(raw: Dict[str, Any], default_ts: float) -> FramePacket:
    if not isinstance(raw, dict):
        raise ValueError(f"Frame record must be a mapping, got {type(raw).__name__}")
    return FramePacket(
        detections=[parse_detection(d) for d in raw.get("detections") or []],
        timestamp=float(raw.get("timestamp", default_ts)),
        pose=parse_pose(raw.get("pose")),
    )


class ReplayInput(BaseInput):
    """
    Recorded per-frame detector output, one frame per record.

    .jsonl -> one JSON object per line
    .yaml  -> either a list of frames or {"fps": ..., "frames": [...]}
    """

    def __init__(self, path: str | Path, allow_missing: bool = False, frame_rate: float = 30.0):
        self.path = Path(path)
        self.logger = get_logger(__name__)
        self.frame_rate = frame_rate
        self.records: List[Dict[str, Any]] = []
        self.meta: Optional[ReplayMeta] = None

        if not self.path.exists():
            if allow_missing:
                self.logger.warning("Replay %s not found; proceeding inert for testing.", self.path)
                return
            raise FileNotFoundError(f"Replay not found: {self.path}")

        self.records, fps = self._load()
        self.meta = ReplayMeta(fps=fps, frame_count=len(self.records))
        self.logger.info("Replay opened: %s fps=%.2f frames=%d", self.path, fps, len(self.records))

    def _load(self) -> Tuple[List[Dict[str, Any]], float]:
        text = self.path.read_text(encoding="utf-8")
        if self.path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or []
            if isinstance(data, dict):
                return list(data.get("frames") or []), float(data.get("fps", self.frame_rate))
            return list(data), self.frame_rate

        records = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise ValueError(f"{self.path}:{lineno}: invalid JSON") from exc
        return records, self.frame_rate

    def start(self) -> None:
        # Loading handled in __init__
        return

    def frames(self) -> Generator[Tuple[int, FramePacket], None, None]:
        fps = self.meta.fps if self.meta else self.frame_rate
        for idx, raw in enumerate(self.records, start=1):
            yield idx, parse_frame(raw, default_ts=idx / fps)

    def stop(self) -> None:
        self.records = []
