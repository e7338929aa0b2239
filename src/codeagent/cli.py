"""Command-line interface for codeagent.

Commands:
- codeagent ls <root> [subdir]: List files inside the sandbox
- codeagent cat <root> <path>: Print a sandboxed file
- codeagent apply <root> <ops_file>: Apply operations from JSON or a saved model response
- codeagent execute <root> <instructions>: Ask the model for changes and apply them
- codeagent ask <root> <question>: Ask the model about files without changing them
- codeagent ensure-config <root> <spec.yml>: Bring config files in line with a spec
- codeagent check-config <root> <spec.yml>: Report config file compliance
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from .agent import AgentResult, CodeAgent
from .applier import apply_operations
from .config import CodeAgentConfig, load_config
from .config_agent import ConfigSpec, check_compliance, ensure_configuration
from .response_parser import parse_response
from .store import SandboxedStore
from .telemetry import TelemetrySink
from .types import ApplyReport, StoreError

ROOT_ARG = click.Path(exists=True, file_okay=False)


def _load(root: Path, config: str | None) -> CodeAgentConfig:
    if config:
        cfg = CodeAgentConfig.load_from_file(config)
        cfg.apply_env_overrides()
        return cfg
    return load_config(root)


def _store(root: str, config: str | None) -> SandboxedStore:
    root_path = Path(root).resolve()
    return SandboxedStore(root_path, _load(root_path, config).sandbox.forbidden_components)


def _echo_report(report: ApplyReport) -> None:
    for item in report.invalid:
        click.echo(f"  ✗ operation #{item.index}: {item.reason}")
    for path, outcome in report.outcomes.items():
        if outcome.is_failure:
            click.echo(f"  ✗ {path} - {outcome.reason}")
        elif outcome.status == "success":
            click.echo(f"  ✓ {path}")
        else:
            click.echo(f"  - {path} (no operations)")


def _echo_result(result: AgentResult) -> None:
    if result.response.analysis:
        click.echo("Analysis:")
        click.echo(result.response.analysis)
        click.echo()
    if result.response.summary:
        click.echo(result.response.summary)
    if result.response.questions:
        click.echo()
        click.echo("Questions:")
        for q in result.response.questions:
            click.echo(f"  ? {q}")
    if result.report is not None:
        click.echo()
        _echo_report(result.report)


@click.group()
@click.version_option(version="0.1.0", prog_name="codeagent")
def cli() -> None:
    """codeagent - apply model-proposed file edits inside a sandboxed directory."""
    pass


@cli.command("ls")
@click.argument("root", type=ROOT_ARG)
@click.argument("subdir", default="")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
def list_cmd(root: str, subdir: str, config: str | None) -> None:
    """List files under ROOT/SUBDIR.

    Example:
        codeagent ls ./my_project lib
    """
    files = _store(root, config).list_files(subdir)
    if isinstance(files, StoreError):
        raise click.ClickException(str(files))
    for f in sorted(files):
        click.echo(f)


@cli.command("cat")
@click.argument("root", type=ROOT_ARG)
@click.argument("path")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
def cat_cmd(root: str, path: str, config: str | None) -> None:
    """Print a file from inside ROOT."""
    content = _store(root, config).read_file(path)
    if isinstance(content, StoreError):
        raise click.ClickException(str(content))
    click.echo(content, nl=False)


@cli.command()
@click.argument("root", type=ROOT_ARG)
@click.argument("ops_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    help="Save the apply report to a JSON file",
)
def apply(root: str, ops_file: str, config: str | None, output: str | None) -> None:
    """Apply operations from OPS_FILE to ROOT.

    OPS_FILE holds either a JSON list of operations or a full model response
    (free text with a ```json block containing "operations").

    Example:
        codeagent apply ./my_project response.txt -o report.json
    """
    root_path = Path(root).resolve()
    cfg = _load(root_path, config)

    text = Path(ops_file).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None
    operations = data if isinstance(data, list) else parse_response(text).operations

    store = SandboxedStore(root_path, cfg.sandbox.forbidden_components)
    telemetry = TelemetrySink.for_root(root_path, cfg.telemetry)

    click.echo(f"Applying {len(operations)} operation(s) in: {root_path}")
    click.echo()

    report = apply_operations(store, operations, telemetry)
    _echo_report(report)

    if output:
        Path(output).write_text(json.dumps(report.to_dict(), indent=2))
        click.echo()
        click.echo(f"Report saved to: {output}")

    sys.exit(0 if report.ok else 1)


@cli.command()
@click.argument("root", type=ROOT_ARG)
@click.argument("instructions")
@click.option("--ref", "-r", "refs", multiple=True, help="File or directory to include as context")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
def execute(root: str, instructions: str, refs: tuple[str, ...], config: str | None) -> None:
    """Ask the model for changes to ROOT and apply them.

    Example:
        codeagent execute ./my_project "Add error handling" -r lib/ -r config/config.exs
    """
    root_path = Path(root).resolve()
    agent = CodeAgent(root_path, config=_load(root_path, config))

    result = asyncio.run(agent.execute(instructions, list(refs)))
    _echo_result(result)
    if not result.ok:
        raise click.ClickException(result.error or "execution failed")


@cli.command()
@click.argument("root", type=ROOT_ARG)
@click.argument("question")
@click.option("--ref", "-r", "refs", multiple=True, help="File or directory to include as context")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
def ask(root: str, question: str, refs: tuple[str, ...], config: str | None) -> None:
    """Ask the model a question about files in ROOT (no changes are made)."""
    root_path = Path(root).resolve()
    agent = CodeAgent(root_path, config=_load(root_path, config))

    result = asyncio.run(agent.ask(question, list(refs)))
    if not result.ok:
        raise click.ClickException(result.error or "request failed")
    click.echo(result.response.summary)


@cli.command("ensure-config")
@click.argument("root", type=ROOT_ARG)
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
def ensure_config(root: str, spec_file: str, config: str | None) -> None:
    """Create or update files in ROOT so they match SPEC_FILE."""
    root_path = Path(root).resolve()
    agent = CodeAgent(root_path, config=_load(root_path, config))
    spec = ConfigSpec.load_from_file(spec_file)

    ok, results = asyncio.run(ensure_configuration(agent, spec))
    for item in results:
        mark = "✓" if item["ok"] else "✗"
        line = f"  {mark} {item['path']}"
        if item["error"]:
            line += f" - {item['error']}"
        click.echo(line)
        if item["summary"]:
            click.echo(f"    {item['summary']}")

    sys.exit(0 if ok else 1)


@cli.command("check-config")
@click.argument("root", type=ROOT_ARG)
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
def check_config(root: str, spec_file: str, config: str | None) -> None:
    """Report whether files in ROOT comply with SPEC_FILE."""
    root_path = Path(root).resolve()
    agent = CodeAgent(root_path, config=_load(root_path, config))
    spec = ConfigSpec.load_from_file(spec_file)

    report = asyncio.run(check_compliance(agent, spec))
    for entry in report["files"]:
        if entry["compliant"]:
            click.echo(f"  ✓ {entry['path']}")
        else:
            click.echo(f"  ✗ {entry['path']} - {entry.get('reason') or 'not compliant'}")

    sys.exit(0 if report["compliant"] else 1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
