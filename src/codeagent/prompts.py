"""Prompt builders for modification requests and questions."""

from __future__ import annotations

RESPONSE_FORMAT = """```json
{
  "analysis": "Your detailed analysis of what needs to be done",
  "operations": [
    {
      "type": "edit",
      "file": "path/to/file",
      "find": "exact content to find including whitespace",
      "replace": "new content to replace with"
    },
    {
      "type": "create",
      "file": "path/to/new/file",
      "content": "full file content here"
    }
  ],
  "questions": ["Any clarifying questions if you need more information"],
  "summary": "A brief human-readable summary of what you did"
}
```"""

RESPONSE_NOTES = """Important notes:
- For "edit" operations: match the EXACT text including all whitespace and newlines
- For "create" operations: provide the complete file content
- Multiple edit operations on the same file will be applied sequentially
- All file paths should be relative to the base directory
- If you have questions or need clarification, include them in the "questions" array
- Always include a brief summary of your changes"""


def format_files(files: list[tuple[str, str]]) -> str:
    return "\n\n".join(f"### File: {path}\n```\n{content}\n```" for path, content in files)


def build_modification_prompt(
    instructions: str,
    files: list[tuple[str, str]],
    base_dir: str,
) -> str:
    sections = [f"You are a code modification assistant with access to modify files in: {base_dir}"]
    sections.append("")

    if files:
        sections.append("## Available Files:")
        sections.append(format_files(files))
    else:
        sections.append("No reference files provided.")
    sections.append("")

    sections.append("## Instructions:")
    sections.append(instructions)
    sections.append("")
    sections.append(
        "Based on the files provided and the instructions, analyze what needs to be done "
        "and provide your response in this JSON format:"
    )
    sections.append("")
    sections.append(RESPONSE_FORMAT)
    sections.append("")
    sections.append(RESPONSE_NOTES)

    return "\n".join(sections)


def build_question_prompt(question: str, files: list[tuple[str, str]]) -> str:
    sections = []
    if files:
        sections.append("## Context Files:")
        sections.append(format_files(files))
        sections.append("")

    sections.append("## Question:")
    sections.append(question)
    sections.append("")
    sections.append(
        "Please provide a helpful and detailed response based on the files and context provided."
    )

    return "\n".join(sections)
