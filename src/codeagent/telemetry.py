"""Telemetry for codeagent sessions.

Each apply batch and model round-trip appends one JSON line per event:

    {"timestamp": <float>, "run_id": <str>, "type": <str>, "data": <object>}

Event types:
    - apply_started: Batch received by the applier
    - apply_rejected: Batch failed validation, nothing written
    - file_outcome: Per-file result of a batch
    - apply_completed: Batch finished
    - model_request: Prompt sent to the model
    - model_error: Model call failed
    - compliance_checked: Config file compliance result

Telemetry is best-effort: a log file that cannot be written is skipped, never
raised into the apply or the model call that produced the event.
"""

from __future__ import annotations

import json
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import TelemetryConfig

DEFAULT_TELEMETRY_PATH = ".codeagent/telemetry.jsonl"


def new_run_id() -> str:
    return str(uuid.uuid4())[:8]


@dataclass(frozen=True)
class TelemetrySink:
    """Append-only JSONL event log for one sandbox."""

    enabled: bool
    path: Path

    @classmethod
    def for_root(cls, root: Path, config: TelemetryConfig) -> TelemetrySink:
        """Build the sink a sandbox root's config describes (log_path is root-relative)."""
        return cls(enabled=config.enabled, path=Path(root) / config.log_path)

    def log(self, run_id: str, event_type: str, data: dict[str, Any]) -> bool:
        """Append one event. Returns False if it was not written."""
        if not self.enabled:
            return False

        line = json.dumps(
            {"timestamp": time.time(), "run_id": run_id, "type": event_type, "data": data},
            ensure_ascii=False,
            default=str,
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:
            return False
        return True

    def prune(self, retention_days: int) -> None:
        prune_telemetry_file(self.path, retention_days)


def prune_telemetry_file(telemetry_path: Path, retention_days: int) -> None:
    """Remove the log once its last write is older than retention_days. 0 keeps it forever."""
    if retention_days <= 0:
        return
    try:
        if telemetry_path.stat().st_mtime < time.time() - retention_days * 86400:
            telemetry_path.unlink(missing_ok=True)
    except OSError:
        return


def read_events(telemetry_path: Path) -> list[dict[str, Any]]:
    """Load all events from a telemetry file, skipping malformed lines."""
    if not telemetry_path.exists():
        return []
    events = []
    for line in telemetry_path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        try:
            events.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return events


# Model errors can echo request headers, response bodies or file contents
# sent as context.
_SECRET_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----", re.S),
        "PRIVATE_KEY_REDACTED",
    ),
    (re.compile(r"(?i)\b(authorization|x-api-key)(\s*[:=]\s*)\S+(\s+\S+)?"), r"\1\2REDACTED"),
    (re.compile(r"Bearer\s+[A-Za-z0-9._\-]{8,}"), "Bearer REDACTED"),
    (re.compile(r"\bsk-[A-Za-z0-9_\-]{16,}"), "sk-REDACTED"),
    (re.compile(r"\bAKIA[0-9A-Z]{16}\b"), "AKIA_REDACTED"),
    (re.compile(r"\bgh[pousr]_[A-Za-z0-9]{20,}\b"), "GITHUB_TOKEN_REDACTED"),
]


def redact_text(s: str, *, max_len: int = 400) -> str:
    """Mask credentials and key material, then truncate to max_len characters."""
    if not s:
        return ""
    for pat, repl in _SECRET_PATTERNS:
        s = pat.sub(repl, s)
    s = s.strip()
    if len(s) > max_len:
        s = s[:max_len] + "...(truncated)"
    return s
