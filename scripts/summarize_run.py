#!/usr/bin/env python3
import json
import sys
from collections import Counter
from pathlib import Path
from statistics import mean, median


def safe_mean(xs):
    xs = [x for x in xs if x is not None]
    return mean(xs) if xs else None


def pct(n, d):
    return (100.0 * n / d) if d else 0.0


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/summarize_run.py results/run_YYYYMMDD_HHMMSS")
        sys.exit(1)

    run_dir = Path(sys.argv[1])
    metrics_path = run_dir / "metrics.json"
    if not metrics_path.exists():
        raise FileNotFoundError(f"Missing: {metrics_path}")

    m = json.loads(metrics_path.read_text())
    frames = m.get("frames", [])
    n = len(frames)
    if n == 0:
        print("No frames found in metrics.json")
        return

    fps_vals = [f.get("fps") for f in frames if f.get("fps") is not None]
    status_counts = Counter(f.get("status", "NONE") for f in frames)
    matched = sum(1 for f in frames if f.get("matched"))
    spoken = Counter(f["instruction"] for f in frames if f.get("instruction"))
    announcements = [f["announcement"] for f in frames if f.get("announcement")]

    print("\n================ GUIDEPOST RUN SUMMARY ================")
    print(f"Run dir: {run_dir}")
    print(f"Target: {m.get('input', {}).get('target')}")
    print(f"Frames: {n}")
    if fps_vals:
        print(f"FPS  avg={mean(fps_vals):.2f}  med={median(fps_vals):.2f}  min={min(fps_vals):.2f}  max={max(fps_vals):.2f}")

    print("\nLatency (ms) (avg):")
    for stage in ("identity", "lock", "guidance"):
        sm = safe_mean([f.get("stages_ms", {}).get(stage) for f in frames])
        print(f"  {stage:10s} {sm:.3f}" if sm is not None else f"  {stage:10s} (missing)")

    print("\nLock status distribution:")
    for k in ["LOCKED", "SEARCHING", "UNLOCKED"]:
        c = status_counts.get(k, 0)
        print(f"  {k:9s}: {c:4d} ({pct(c, n):.1f}%)")
    print(f"  matched frames: {matched}/{n} ({pct(matched, n):.1f}%)")

    print("\nInstructions:")
    for text, c in spoken.most_common():
        print(f"  {c:4d}  {text}")
    if announcements:
        print("\nAnnouncements:")
        for text in announcements:
            print(f"  {text}")
    print("=======================================================\n")


if __name__ == "__main__":
    main()
