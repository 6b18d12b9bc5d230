"""JSONL logging for generation runs.

Each call to the generate endpoint writes one JSONL file recording:
- Run start (user, model, form inputs)
- The prompt sent
- The raw model response
- Parse outcome (accepted / quarantined records)
- Persistence outcome
- Errors
- Run end

Logs are written with immediate flush so a run can be inspected while the
request is still in flight. When no log directory is configured the logger
accepts every call and writes nothing.
"""

import json
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, Any

from .models import LogEntryType


class GenerationLogger:
    """JSONL logger for a single generation run.

    Example output:
        {"type": "generation_start", "timestamp": "...", "run_id": "..."}
        {"type": "prompt", "timestamp": "...", "prompt_length": 1432, ...}
        {"type": "model_response", "timestamp": "...", "response_length": 2210, ...}
        {"type": "parse_result", "timestamp": "...", "accepted": 11, "quarantined": 1}
        {"type": "generation_end", "timestamp": "...", "outcome": "success", ...}
    """

    # Raw responses are truncated at 50KB
    DEFAULT_TRUNCATION_LIMIT = 50000

    def __init__(
        self,
        log_dir: Optional[Path],
        run_id: Optional[str] = None,
        user_id: Optional[str] = None,
        model: str = "",
        output_truncation_limit: int = DEFAULT_TRUNCATION_LIMIT
    ):
        """Initialize generation logger.

        Args:
            log_dir: Directory for run logs (None disables logging)
            run_id: Unique run identifier (generated if omitted)
            user_id: Requesting user
            model: Model used for the run
            output_truncation_limit: Max chars for raw text (0 to disable truncation)
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.run_id = run_id or f"gen_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"
        self.user_id = user_id
        self.model = model
        self.output_truncation_limit = output_truncation_limit

        self.log_file: Optional[Path] = None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = self.log_dir / f"{self.run_id}.jsonl"

        self._started_at = datetime.now()
        self._file_handle: Optional[Any] = None

    @property
    def enabled(self) -> bool:
        return self.log_file is not None

    def _truncate(self, text: str) -> str:
        limit = self.output_truncation_limit
        if limit > 0 and len(text) > limit:
            return text[:limit]
        return text

    def _write_entry(self, entry: dict) -> None:
        """Write a log entry with immediate flush.

        Args:
            entry: Dict to write as JSON line
        """
        if not self.enabled:
            return

        if "timestamp" not in entry:
            entry["timestamp"] = datetime.now().isoformat()

        if self._file_handle is None:
            self._file_handle = open(self.log_file, "a", encoding="utf-8")

        self._file_handle.write(json.dumps(entry, default=str) + "\n")
        self._file_handle.flush()

        try:
            os.fsync(self._file_handle.fileno())
        except (OSError, AttributeError):
            pass  # Some systems don't support fsync

    def log_start(self, inputs: dict) -> None:
        """Log the start of a run with its form inputs."""
        self._write_entry({
            "type": LogEntryType.GENERATION_START.value,
            "run_id": self.run_id,
            "user_id": self.user_id,
            "model": self.model,
            "inputs": inputs,
        })

    def log_prompt(self, prompt_text: str) -> None:
        self._write_entry({
            "type": LogEntryType.PROMPT.value,
            "prompt_length": len(prompt_text),
            "prompt_text": prompt_text,
        })

    def log_model_response(self, text: str, duration_ms: Optional[int] = None) -> None:
        """Log the raw text returned by the model.

        Args:
            text: Raw response text
            duration_ms: Call latency in milliseconds
        """
        self._write_entry({
            "type": LogEntryType.MODEL_RESPONSE.value,
            "response_length": len(text),
            "response_text": self._truncate(text),
            "duration_ms": duration_ms,
        })

    def log_parse_result(self, accepted: int, quarantined: list[dict]) -> None:
        """Log how many records survived schema validation.

        Args:
            accepted: Number of valid task records
            quarantined: Rejected records as dicts (index, raw, reason)
        """
        self._write_entry({
            "type": LogEntryType.PARSE_RESULT.value,
            "accepted": accepted,
            "quarantined": len(quarantined),
            "rejections": quarantined,
        })

    def log_persisted(
        self,
        project_id: str,
        groups: int,
        tasks: int,
        ungrouped_types: Optional[list[str]] = None
    ) -> None:
        self._write_entry({
            "type": LogEntryType.PERSISTED.value,
            "project_id": project_id,
            "groups": groups,
            "tasks": tasks,
            "ungrouped_types": ungrouped_types or [],
        })

    def log_error(self, category: str, message: str, raw_error: Optional[str] = None) -> None:
        """Log an error event.

        Args:
            category: Error class name (GenerationFailed, ParseError, ...)
            message: Client-facing message
            raw_error: Underlying error detail (never sent to clients)
        """
        self._write_entry({
            "type": LogEntryType.ERROR.value,
            "category": category,
            "message": message,
            "raw_error": raw_error,
        })

    def log_end(self, outcome: str, project_id: Optional[str] = None) -> float:
        """Log the end of the run and close the file.

        Args:
            outcome: "success" or "failure"
            project_id: Created project, when successful

        Returns:
            Run duration in seconds
        """
        duration_seconds = (datetime.now() - self._started_at).total_seconds()
        self._write_entry({
            "type": LogEntryType.GENERATION_END.value,
            "run_id": self.run_id,
            "outcome": outcome,
            "project_id": project_id,
            "duration_seconds": round(duration_seconds, 2),
        })
        self.close()
        return duration_seconds

    def close(self) -> None:
        """Close the log file handle."""
        if self._file_handle:
            try:
                self._file_handle.close()
            except OSError:
                pass
            self._file_handle = None

    def __enter__(self) -> "GenerationLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def read_generation_log(log_path: Path) -> list[dict]:
    """Read all entries from a generation log file.

    Args:
        log_path: Path to the JSONL log file

    Returns:
        List of log entry dicts
    """
    entries = []
    if not log_path.exists():
        return entries

    with open(log_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    continue

    return entries


def get_generation_summary(log_path: Path) -> Optional[dict]:
    """Summarize a generation run from its log file.

    Args:
        log_path: Path to the JSONL log file

    Returns:
        Summary dict or None if the log is empty
    """
    entries = read_generation_log(log_path)
    if not entries:
        return None

    summary = {
        "run_id": None,
        "user_id": None,
        "model": None,
        "started_at": None,
        "ended_at": None,
        "outcome": None,
        "project_id": None,
        "accepted": 0,
        "quarantined": 0,
        "duration_seconds": None,
        "errors": []
    }

    for entry in entries:
        entry_type = entry.get("type")

        if entry_type == LogEntryType.GENERATION_START.value:
            summary["run_id"] = entry.get("run_id")
            summary["user_id"] = entry.get("user_id")
            summary["model"] = entry.get("model")
            summary["started_at"] = entry.get("timestamp")

        elif entry_type == LogEntryType.PARSE_RESULT.value:
            summary["accepted"] = entry.get("accepted", 0)
            summary["quarantined"] = entry.get("quarantined", 0)

        elif entry_type == LogEntryType.ERROR.value:
            summary["errors"].append({
                "category": entry.get("category"),
                "message": entry.get("message")
            })

        elif entry_type == LogEntryType.GENERATION_END.value:
            summary["ended_at"] = entry.get("timestamp")
            summary["outcome"] = entry.get("outcome")
            summary["project_id"] = entry.get("project_id")
            summary["duration_seconds"] = entry.get("duration_seconds")

    return summary


def list_generation_logs(log_dir: Path, limit: int = 20) -> list[Path]:
    """Return the most recent generation log files, newest first."""
    if not log_dir.exists():
        return []
    logs = sorted(log_dir.glob("*.jsonl"), key=lambda p: p.stat().st_mtime, reverse=True)
    return logs[:limit]
