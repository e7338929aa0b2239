"""Idempotent configuration-file management.

A ConfigSpec lists the files a directory should contain, each with a
description and an optional template. ensure_configuration() asks the model
to create or minimally edit each file until it matches; check_compliance()
only reports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from .agent import CodeAgent
from .response_parser import extract_json_object
from .types import StoreError


class FileSpec(BaseModel):
    """Expected state of one configuration file."""

    path: str
    description: str
    template: str | None = None  # Template name or inline template body
    format: str | None = None  # yaml, json, toml, ...


class ConfigSpec(BaseModel):
    """Set of configuration files a directory must contain."""

    instructions: str = ""
    files: list[FileSpec] = Field(default_factory=list)
    templates: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def load_from_file(cls, spec_path: Path | str) -> ConfigSpec:
        """Load a configuration spec from YAML file."""
        spec_path = Path(spec_path)
        if not spec_path.exists():
            raise FileNotFoundError(f"Spec file not found: {spec_path}")

        with open(spec_path) as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))


def resolve_template(template_ref: str | None, templates: dict[str, str]) -> str | None:
    """Named template if template_ref matches one, else the inline body itself."""
    if template_ref is None:
        return None
    return templates.get(template_ref, template_ref)


def _template_section(template: str | None) -> str:
    if template is None:
        return ""
    return (
        "## Template/Example\n"
        "The file should follow this template structure:\n"
        f"```\n{template}\n```"
    )


def _current_section(content: str | None) -> str:
    if content is None:
        return "## Current State\nFile does not exist."
    return f"## Current File Content\n```\n{content}\n```"


def build_idempotent_prompt(
    file_spec: FileSpec,
    template: str | None,
    current_content: str | None,
    instructions: str = "",
) -> str:
    sections = [
        "You are a configuration management agent. Your task is to ensure a "
        "configuration file matches specifications EXACTLY.",
        "",
        "## File Specification",
        f"Path: {file_spec.path}",
        f"Description: {file_spec.description}",
        f"Format: {file_spec.format or 'auto-detect'}",
        "",
    ]
    if instructions:
        sections += ["## Overall Instructions", instructions, ""]
    if template is not None:
        sections += [_template_section(template), ""]
    sections += [_current_section(current_content), ""]
    sections += [
        "## Instructions",
        "1. If the file doesn't exist, create it according to the specification",
        "2. If the file exists but doesn't match the specification, modify it to match",
        "3. If the file already matches the specification, do nothing",
        "4. Ensure the result is idempotent - running this again should produce no changes",
        "5. Preserve any valid configuration that doesn't conflict with the specification",
        "6. Use proper formatting for the file type (proper indentation, syntax, etc.)",
        "",
        "IMPORTANT: The file must comply with the description and template (if provided).",
        "Make the minimum necessary changes to achieve compliance.",
    ]
    return "\n".join(sections)


def build_compliance_check_prompt(
    file_spec: FileSpec,
    template: str | None,
    current_content: str,
) -> str:
    sections = [
        "Check if the following configuration file is compliant with its specification.",
        "",
        "## File Specification",
        f"Path: {file_spec.path}",
        f"Description: {file_spec.description}",
        f"Format: {file_spec.format or 'auto-detect'}",
        "",
    ]
    if template is not None:
        sections += [_template_section(template), ""]
    sections += [
        _current_section(current_content),
        "",
        "Please analyze if the current file is compliant with the specification.",
        "Respond with a JSON object:",
        "{",
        '  "compliant": true/false,',
        '  "reason": "explanation if not compliant",',
        '  "missing": ["list of missing required elements"],',
        '  "incorrect": ["list of incorrect elements"]',
        "}",
    ]
    return "\n".join(sections)


def parse_compliance_response(path: str, response: str) -> dict[str, Any]:
    data = extract_json_object(response)
    if data is not None and isinstance(data.get("compliant"), bool):
        return {
            "path": path,
            "compliant": data["compliant"],
            "reason": data.get("reason"),
            "missing": data.get("missing") or [],
            "incorrect": data.get("incorrect") or [],
        }

    # Fallback: guess from the text.
    lowered = response.lower()
    return {
        "path": path,
        "compliant": "compliant" in lowered and "not compliant" not in lowered,
        "reason": response,
        "missing": [],
        "incorrect": [],
    }


def _read_current(agent: CodeAgent, path: str) -> str | None:
    content = agent.store.read_file(path)
    if isinstance(content, StoreError):
        return None
    return content


async def ensure_file(agent: CodeAgent, file_spec: FileSpec, spec: ConfigSpec) -> dict[str, Any]:
    template = resolve_template(file_spec.template, spec.templates)
    current = _read_current(agent, file_spec.path)
    prompt = build_idempotent_prompt(file_spec, template, current, spec.instructions)

    with agent.isolated_history():
        result = await agent.execute(prompt, [])
    return {
        "path": file_spec.path,
        "ok": result.ok,
        "operations": result.response.operations,
        "summary": result.response.summary,
        "error": result.error,
    }


async def ensure_configuration(
    agent: CodeAgent,
    spec: ConfigSpec,
) -> tuple[bool, list[dict[str, Any]]]:
    """
    Make every file in spec match its specification.

    Files are processed one at a time, each with empty conversation history.
    A failure on one file does not stop the others.

    Returns:
        (ok, results) where ok is True only if every file succeeded
    """
    results = []
    for file_spec in spec.files:
        results.append(await ensure_file(agent, file_spec, spec))
    return all(r["ok"] for r in results), results


async def check_file_compliance(
    agent: CodeAgent,
    file_spec: FileSpec,
    spec: ConfigSpec,
) -> dict[str, Any]:
    current = _read_current(agent, file_spec.path)
    if current is None:
        return {
            "path": file_spec.path,
            "compliant": False,
            "reason": "File does not exist",
            "missing": [],
            "incorrect": [],
        }

    template = resolve_template(file_spec.template, spec.templates)
    prompt = build_compliance_check_prompt(file_spec, template, current)
    with agent.isolated_history():
        result = await agent.ask(prompt, [])
    if not result.ok:
        return {
            "path": file_spec.path,
            "compliant": False,
            "reason": f"Failed to check compliance: {result.error}",
            "missing": [],
            "incorrect": [],
        }
    return parse_compliance_response(file_spec.path, result.response.summary)


async def check_compliance(agent: CodeAgent, spec: ConfigSpec) -> dict[str, Any]:
    """Report, without modifying anything, whether each file matches spec."""
    files = []
    for file_spec in spec.files:
        entry = await check_file_compliance(agent, file_spec, spec)
        agent.telemetry.log(
            "compliance",
            "compliance_checked",
            {"path": entry["path"], "compliant": entry["compliant"]},
        )
        files.append(entry)
    return {"compliant": all(f["compliant"] for f in files), "files": files}
