"""Code agent session: context loading, model round-trip, operation apply."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from .applier import apply_operations_async
from .config import CodeAgentConfig, load_config
from .model_client import ModelClient, ModelClientError
from .prompts import build_modification_prompt, build_question_prompt
from .response_parser import ParsedResponse, parse_response
from .store import SandboxedStore
from .telemetry import TelemetrySink, new_run_id, redact_text
from .types import ApplyReport, StoreError


@dataclass
class AgentResult:
    """Outcome of one execute() or ask() call."""

    ok: bool
    response: ParsedResponse = field(default_factory=ParsedResponse)
    report: ApplyReport | None = None
    error: str = ""
    run_id: str = ""


class CodeAgent:
    """
    Sends file context and instructions to the model and applies the result.

    All file access goes through a SandboxedStore rooted at root. Conversation
    history is kept in memory for the lifetime of the agent.
    """

    def __init__(
        self,
        root: Path | str,
        config: CodeAgentConfig | None = None,
        client: ModelClient | None = None,
        telemetry: TelemetrySink | None = None,
    ):
        self.config = config or load_config(root)
        self.store = SandboxedStore(root, self.config.sandbox.forbidden_components)
        # Allow dependency injection for testing and for sharing one client.
        self.client = client or ModelClient(self.config.model)
        if telemetry is None:
            telemetry = TelemetrySink.for_root(self.store.root, self.config.telemetry)
            if telemetry.enabled:
                telemetry.prune(self.config.telemetry.retention_days)
        self.telemetry = telemetry
        self.history: list[dict[str, str]] = []
        self._apply_lock = asyncio.Lock()

    @property
    def root(self) -> Path:
        return self.store.root

    def _telemetry_file(self) -> str | None:
        try:
            return self.telemetry.path.resolve().relative_to(self.root).as_posix()
        except (OSError, ValueError):
            return None

    @contextmanager
    def isolated_history(self) -> Iterator[None]:
        """Run a block with empty conversation history, then restore the previous one."""
        saved = self.history
        self.history = []
        try:
            yield
        finally:
            self.history = saved

    def load_reference_files(self, paths: list[str]) -> list[tuple[str, str]]:
        """
        Read files and directories (recursively) under root as (path, content) pairs.

        Paths that are missing, rejected by the sandbox or not UTF-8 are
        skipped, as is the agent's own telemetry log.
        """
        files: list[tuple[str, str]] = []
        seen: set[str] = set()
        telemetry_file = self._telemetry_file()
        if telemetry_file is not None:
            seen.add(telemetry_file)
        for path in paths:
            resolved = self.store.resolve(path)
            if isinstance(resolved, StoreError):
                continue
            if resolved.is_dir():
                listed = self.store.list_files(path)
                candidates = [] if isinstance(listed, StoreError) else sorted(listed)
            elif resolved.is_file():
                candidates = [resolved.relative_to(self.root).as_posix()]
            else:
                continue

            for candidate in candidates:
                if candidate in seen:
                    continue
                content = self.store.read_file(candidate)
                if isinstance(content, StoreError):
                    continue
                seen.add(candidate)
                files.append((candidate, content))
        return files

    async def execute(
        self,
        instructions: str,
        reference_paths: list[str] | None = None,
    ) -> AgentResult:
        """
        Ask the model for file operations and apply them.

        Args:
            instructions: Natural-language change request
            reference_paths: Files or directories to include as context

        Returns:
            AgentResult; ok is False if the model call failed, the batch was
            invalid, or any file failed to apply
        """
        run_id = new_run_id()
        files = self.load_reference_files(reference_paths or [])
        prompt = build_modification_prompt(instructions, files, str(self.root))

        try:
            text = await self._send(run_id, prompt, len(files))
        except ModelClientError as e:
            return AgentResult(ok=False, error=str(e), run_id=run_id)

        parsed = parse_response(text)
        async with self._apply_lock:
            report = await apply_operations_async(
                self.store, parsed.operations, self.telemetry, run_id
            )

        self._record(instructions, parsed.summary)
        error = ""
        if report.invalid:
            error = "invalid operations: " + "; ".join(
                f"#{i.index} {i.reason}" for i in report.invalid
            )
        elif not report.ok:
            error = "failed files: " + ", ".join(report.failed_files)
        return AgentResult(ok=report.ok, response=parsed, report=report, error=error, run_id=run_id)

    async def ask(
        self,
        question: str,
        reference_paths: list[str] | None = None,
    ) -> AgentResult:
        """Ask a question about the files without modifying anything."""
        run_id = new_run_id()
        files = self.load_reference_files(reference_paths or [])
        prompt = build_question_prompt(question, files)

        try:
            text = await self._send(run_id, prompt, len(files))
        except ModelClientError as e:
            return AgentResult(ok=False, error=str(e), run_id=run_id)

        self._record(question, text)
        return AgentResult(ok=True, response=ParsedResponse(summary=text), run_id=run_id)

    async def _send(self, run_id: str, prompt: str, file_count: int) -> str:
        self.telemetry.log(
            run_id, "model_request", {"files": file_count, "prompt_chars": len(prompt)}
        )
        try:
            return await self.client.complete(prompt, list(self.history))
        except ModelClientError as e:
            self.telemetry.log(run_id, "model_error", {"error": redact_text(str(e))})
            raise

    def _record(self, user_input: str, response_text: str) -> None:
        self.history.append({"role": "user", "content": user_input})
        self.history.append({"role": "assistant", "content": response_text})
        limit = self.config.agent.max_history_messages
        if limit > 0 and len(self.history) > limit:
            self.history = self.history[-limit:]
