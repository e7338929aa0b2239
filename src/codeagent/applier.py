"""Apply validated file operations through the sandboxed store.

Per batch:
- Every operation is validated first; one invalid operation rejects the batch
  before any write.
- Operations are grouped by target file, keeping their relative order.
- Per file, the first create wins; later creates for the same file are ignored.
- Edits fold over the content in order and the result is written once.
- A failing file does not stop or roll back the others.
"""

from __future__ import annotations

import asyncio
from typing import Any

from .operations import CreateOperation, EditOperation, Operation, validate_operations
from .store import SandboxedStore
from .telemetry import TelemetrySink, new_run_id
from .types import ApplyReport, FileOutcome, StoreError


def group_by_file(operations: list[Operation]) -> dict[str, list[Operation]]:
    groups: dict[str, list[Operation]] = {}
    for op in operations:
        groups.setdefault(op.file, []).append(op)
    return groups


def fold_edits(content: str, edits: list[EditOperation]) -> str:
    """Apply edits in order, each one to the previous edit's output."""
    acc = content
    for edit in edits:
        acc = acc.replace(edit.find, edit.replace)
    return acc


def apply_file_operations(
    store: SandboxedStore,
    file_path: str,
    operations: list[Operation],
) -> FileOutcome:
    creates = [op for op in operations if isinstance(op, CreateOperation)]
    edits = [op for op in operations if isinstance(op, EditOperation)]

    if not creates and not edits:
        return FileOutcome("no_operations")

    if creates:
        base: str | StoreError = creates[0].content
    else:
        base = store.read_file(file_path)
        if isinstance(base, StoreError):
            return FileOutcome("failure", str(base))

    error = store.write_file(file_path, fold_edits(base, edits))
    if error is not None:
        return FileOutcome("failure", str(error))
    return FileOutcome("success")


def apply_operations(
    store: SandboxedStore,
    raw_operations: list[Any],
    telemetry: TelemetrySink | None = None,
    run_id: str | None = None,
) -> ApplyReport:
    """
    Validate and apply a batch of operations.

    Args:
        store: Sandboxed store rooted at the working tree
        raw_operations: Untrusted operation values (decoded JSON)
        telemetry: Optional sink for per-file events
        run_id: Identifier used in telemetry events

    Returns:
        ApplyReport. ok is False when the batch was invalid (nothing written)
        or when at least one file failed (the other files stay applied).
    """
    run_id = run_id or new_run_id()
    if telemetry:
        telemetry.log(run_id, "apply_started", {"operations": len(raw_operations)})

    operations, invalid = validate_operations(raw_operations)
    if invalid:
        if telemetry:
            telemetry.log(
                run_id,
                "apply_rejected",
                {"invalid": [{"index": i.index, "reason": i.reason} for i in invalid]},
            )
        return ApplyReport(ok=False, invalid=invalid)

    outcomes: dict[str, FileOutcome] = {}
    for file_path, ops in group_by_file(operations).items():
        outcome = apply_file_operations(store, file_path, ops)
        outcomes[file_path] = outcome
        if telemetry:
            telemetry.log(
                run_id,
                "file_outcome",
                {"file": file_path, "status": outcome.status, "reason": outcome.reason},
            )

    report = ApplyReport(
        ok=not any(o.is_failure for o in outcomes.values()),
        outcomes=outcomes,
    )
    if telemetry:
        telemetry.log(
            run_id,
            "apply_completed",
            {"ok": report.ok, "files": len(outcomes), "failed": report.failed_files},
        )
    return report


async def apply_operations_async(
    store: SandboxedStore,
    raw_operations: list[Any],
    telemetry: TelemetrySink | None = None,
    run_id: str | None = None,
) -> ApplyReport:
    """Async wrapper running apply_operations() in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None, apply_operations, store, raw_operations, telemetry, run_id
    )
