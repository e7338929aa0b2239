"""Core result types for the sandboxed file layer and the operation applier."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

STORE_ERROR_KINDS = {"path_rejected", "not_found", "directory_not_found", "io_failure"}
OUTCOME_STATUSES = {"no_operations", "success", "failure"}


@dataclass(frozen=True)
class StoreError:
    """A filesystem error returned as data instead of raised."""

    kind: str  # "path_rejected", "not_found", "directory_not_found", "io_failure"
    path: str
    reason: str

    def __post_init__(self) -> None:
        if self.kind not in STORE_ERROR_KINDS:
            raise ValueError(
                f"Invalid kind: {self.kind}. Must be one of {STORE_ERROR_KINDS}"
            )

    def __str__(self) -> str:
        return f"{self.kind}: {self.path}: {self.reason}"


@dataclass(frozen=True)
class InvalidOperation:
    """A structurally malformed operation, identified by its batch position."""

    index: int
    reason: str


@dataclass(frozen=True)
class FileOutcome:
    """Result of applying every operation that targets one file."""

    status: str  # "no_operations", "success", "failure"
    reason: str = ""

    def __post_init__(self) -> None:
        if self.status not in OUTCOME_STATUSES:
            raise ValueError(
                f"Invalid status: {self.status}. Must be one of {OUTCOME_STATUSES}"
            )

    @property
    def is_failure(self) -> bool:
        return self.status == "failure"


@dataclass
class ApplyReport:
    """Result of one batch application."""

    ok: bool
    outcomes: dict[str, FileOutcome] = field(default_factory=dict)
    invalid: list[InvalidOperation] = field(default_factory=list)

    @property
    def failed_files(self) -> list[str]:
        return [path for path, outcome in self.outcomes.items() if outcome.is_failure]

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "outcomes": {
                path: {"status": o.status, "reason": o.reason}
                for path, o in self.outcomes.items()
            },
            "invalid": [{"index": i.index, "reason": i.reason} for i in self.invalid],
            "failed_files": self.failed_files,
        }
