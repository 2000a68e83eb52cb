import json

import yaml

from guidepost.app import main


def test_replay_run_writes_metrics_and_events(tmp_path):
    cfg_path = tmp_path / "cfg.yaml"
    cfg_path.write_text(yaml.safe_dump({"runtime": {"output_dir": str(tmp_path / "results")}}), encoding="utf-8")

    chair = {"label": "chair", "confidence": 0.9, "box": [0.4, 0.4, 0.2, 0.2], "color": [0.6, 0.2, 0.2]}
    pose = {"user_position": [0, 0, 0], "target_position": [0, 0, -3], "screen_size": [1000, 800]}
    frames = [{"timestamp": 0.1 * i, "detections": [chair], "pose": pose} for i in range(3)]
    frames += [{"timestamp": 0.3 + 0.1 * i, "detections": []} for i in range(5)]
    replay_path = tmp_path / "frames.jsonl"
    replay_path.write_text("\n".join(json.dumps(f) for f in frames), encoding="utf-8")

    run_dir = main(["--config", str(cfg_path), "--input", str(replay_path), "--target", "find the chair"])

    metrics = json.loads((run_dir / "metrics.json").read_text())
    assert metrics["input"]["target"] == "Chair"
    statuses = [f["status"] for f in metrics["frames"]]
    assert statuses[:3] == ["LOCKED"] * 3
    assert statuses[-1] == "SEARCHING"

    events = [json.loads(line) for line in (run_dir / "events.jsonl").read_text().splitlines()]
    assert [e["status"] for e in events if e["kind"] == "status"] == ["LOCKED", "SEARCHING"]
    assert {"kind": "speech", "text": "Locked onto Chair"}.items() <= events[1].items()
