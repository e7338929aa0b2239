"""Extract the structured payload from free-form model output."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

_FENCED_JSON = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL)


@dataclass
class ParsedResponse:
    """Model response normalized to the modification-prompt schema.

    operations are left as raw decoded values; the applier validates them.
    """

    analysis: str = ""
    operations: list[Any] = field(default_factory=list)
    questions: list[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "analysis": self.analysis,
            "operations": self.operations,
            "questions": self.questions,
            "summary": self.summary,
        }


def extract_json_object(text: str) -> dict[str, Any] | None:
    """
    Decode a JSON object from model output.

    Tries a ```json fenced block first, then the whole text, then the
    outermost {...} span. Returns None if nothing decodes to an object.
    """
    candidates = []
    match = _FENCED_JSON.search(text)
    if match:
        candidates.append(match.group(1))
    candidates.append(text.strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


def parse_response(text: str) -> ParsedResponse:
    """
    Parse a modification response.

    Text without a decodable JSON object is treated as a plain answer: the
    whole text becomes the summary and there are no operations.
    """
    data = extract_json_object(text)
    if data is None:
        return ParsedResponse(summary=text)

    operations = data.get("operations", [])
    if not isinstance(operations, list):
        # Keep it so the applier rejects the batch instead of silently dropping it.
        operations = [operations]
    questions = data.get("questions", [])
    if not isinstance(questions, list):
        questions = [str(questions)]

    return ParsedResponse(
        analysis=str(data.get("analysis", "") or ""),
        operations=operations,
        questions=[str(q) for q in questions],
        summary=str(data.get("summary", "") or ""),
    )
