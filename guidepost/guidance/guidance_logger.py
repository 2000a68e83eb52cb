import json
from pathlib import Path


class GuidanceLogger:
    def __init__(self, run_dir: Path):
        self.log_path = Path(run_dir) / "events.jsonl"
        self.last_status = None
        self.log_path.touch(exist_ok=True)

    def _append(self, event: dict) -> None:
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(event) + "\n")

    def log_status(self, frame_idx: int, timestamp_s: float, status: str, details: dict):
        """Append an event only when lock status changes."""
        if status == self.last_status:
            return
        self._append(
            {
                "frame": frame_idx,
                "time_s": round(timestamp_s, 3),
                "kind": "status",
                "status": status,
                "details": details,
            }
        )
        self.last_status = status

    def log_speech(self, frame_idx: int, timestamp_s: float, text: str):
        self._append({"frame": frame_idx, "time_s": round(timestamp_s, 3), "kind": "speech", "text": text})
