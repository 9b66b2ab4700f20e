from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .timestamps import now_utc


class RunLogger:
    def __init__(self, root: Path, pass_id: str) -> None:
        self.pass_id = pass_id
        self.log_path = root / "logs" / f"pass-{pass_id}.log"
        self.failures_path = root / "failures" / f"pass-{pass_id}.jsonl"

    def log(self, message: str) -> None:
        line = f"{now_utc()} {message}\n"
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        with self.log_path.open("a", encoding="utf-8") as handle:
            handle.write(line)

    def failure(self, record: dict[str, Any]) -> None:
        record_with_time = {"occurred_at": now_utc(), "pass_id": self.pass_id, **record}
        self.failures_path.parent.mkdir(parents=True, exist_ok=True)
        with self.failures_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record_with_time, ensure_ascii=True) + "\n")
