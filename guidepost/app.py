from __future__ import annotations

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from rich.console import Console
from tqdm import tqdm

from guidepost.guidance.guidance_logger import GuidanceLogger
from guidepost.guidance.targets import resolve_target
from guidepost.inputs.replay_input import ReplayInput
from guidepost.runtime.session import NavigationSession
from guidepost.utils.config import get, load_yaml
from guidepost.utils.logger import setup_logger
from guidepost.utils.timing import FPSMeter


def make_run_dir(base_dir: str | Path) -> Path:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(base_dir) / f"run_{ts}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def main(argv=None):
    parser = argparse.ArgumentParser(description="guidepost - replay recorded detections through a navigation session")
    parser.add_argument("--config", default="configs/guidepost.yaml", help="Path to YAML config")
    parser.add_argument("--input", required=True, help="Recorded detections (.jsonl or .yaml)")
    parser.add_argument("--target", required=True, help='Target to follow, e.g. "Chair 2" or "take me to the lift"')
    args = parser.parse_args(argv)

    cfg: Dict[str, Any] = load_yaml(args.config)

    run_dir = make_run_dir(get(cfg, "runtime.output_dir", "results"))
    logger = setup_logger(log_dir=run_dir, level=get(cfg, "runtime.log_level", "INFO"))
    events = GuidanceLogger(run_dir)

    console = Console()
    console.print(f"[bold]guidepost[/bold] run dir: {run_dir}")

    target = resolve_target(args.target) or args.target
    replay = ReplayInput(args.input)
    logger.info("Input replay: %s target=%s", args.input, target)

    session = NavigationSession(cfg)
    session.request_target(target)
    fps_meter = FPSMeter()

    save_metrics = bool(get(cfg, "runtime.save_metrics", True))
    metrics = {
        "project": cfg.get("project", {}),
        "input": {"path": args.input, "target": target, "meta": replay.meta.__dict__ if replay.meta else {}},
        "frames": [],
    }

    total = replay.meta.frame_count if replay.meta else None
    for frame_id, packet in tqdm(replay.frames(), total=total, desc="Replaying"):
        result = session.process_frame(frame_id, packet)
        fps = fps_meter.tick()

        events.log_status(
            frame_idx=frame_id,
            timestamp_s=packet.timestamp,
            status=result.lock.status.value,
            details={"frames_lost": result.lock.frames_lost, "target_lost": session.lock.is_target_lost},
        )
        for text in (result.announcement, result.instruction):
            if text:
                events.log_speech(frame_id, packet.timestamp, text)
                logger.info("frame %d: %s", frame_id, text)

        if save_metrics:
            metrics["frames"].append(
                {
                    "frame_id": frame_id,
                    "fps": fps,
                    "stages_ms": result.stages_ms,
                    "detection_count": len(packet.detections),
                    "labels": [item.label for item in result.labeled],
                    "status": result.lock.status.value,
                    "frames_lost": result.lock.frames_lost,
                    "matched": result.matched.label if result.matched else None,
                    "instruction": result.instruction,
                    "announcement": result.announcement,
                }
            )

    replay.stop()

    if save_metrics:
        metrics_path = run_dir / "metrics.json"
        metrics_path.write_text(json.dumps(metrics, indent=2), encoding="utf-8")
        logger.info("Saved metrics: %s", metrics_path)

    logger.info("Done.")
    return run_dir


if __name__ == "__main__":
    main()
