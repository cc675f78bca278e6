"""CLI for DecisionFlow."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import orjson
import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from decisionflow.config import AppConfig, configure_logging, load_app_config
from decisionflow.config.environment import load_environment_file
from decisionflow.constants import PACKAGE_VERSION
from decisionflow.engine.validation import GraphIssue, is_valid, validate_flow
from decisionflow.errors import DecisionFlowError
from decisionflow.providers.stored import StoredSubjectFieldProvider
from decisionflow.schemas.enums import AnswerKind
from decisionflow.schemas.execution_models import AuditEntry, ExecutionState
from decisionflow.schemas.flow_models import Flow, Node, QuestionNode
from decisionflow.security.redaction import redact_text
from decisionflow.service import DecisionFlowService

T = TypeVar("T")
TEXT_ANSWER_KINDS = frozenset({AnswerKind.SINGLE_CHOICE, AnswerKind.DATE})

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="DecisionFlow guided decision-flow execution engine.",
)
flows_app = typer.Typer(no_args_is_help=True, help="Manage stored flow definitions.")
subject_app = typer.Typer(no_args_is_help=True, help="Inspect and edit locally stored subjects.")
app.add_typer(flows_app, name="flows")
app.add_typer(subject_app, name="subject")
console = Console()

ConfigOption = typer.Option(None, "--config", help="Path to settings.yaml override.")
DbPathOption = typer.Option(None, "--db-path", help="SQLite path for flow storage.")
SubjectOption = typer.Option(..., "--subject", help="Subject identifier, e.g. PROJ-123.")
FlowOption = typer.Option(..., "--flow", help="Flow identifier.")


@app.callback()
def main_callback(
    env_file: Path | None = typer.Option(None, "--env-file", help="Explicit .env file to load."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Load environment files and configure logging before any command."""
    load_environment_file(env_file)
    try:
        config_model = load_app_config()
    except Exception:  # noqa: BLE001
        config_model = AppConfig()
    configure_logging(config_model, verbose=verbose)


@app.command()
def version() -> None:
    """Print the DecisionFlow version."""
    typer.echo(PACKAGE_VERSION)


@app.command("validate-config")
def validate_config(config: Path | None = ConfigOption) -> None:
    """Validate configuration and print the resolved settings."""
    try:
        config_model = load_app_config(config)
    except Exception as exc:  # noqa: BLE001
        console.print(f"[red]Configuration validation failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    table = Table(title="Resolved Configuration")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("storage.backend", config_model.storage.backend.value)
    table.add_row("storage.db_path", str(config_model.storage.db_path))
    table.add_row("engine.validate_answers", str(config_model.engine.validate_answers))
    table.add_row("engine.max_automatic_steps", str(config_model.engine.max_automatic_steps))
    table.add_row("provider.type", config_model.provider.type.value)
    table.add_row("provider.base_url", config_model.provider.base_url or "-")
    table.add_row("logging.level", config_model.logging.level)
    console.print(table)


@app.command("healthcheck")
def healthcheck(
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
    quiet: bool = typer.Option(False, "--quiet", help="Suppress success output."),
) -> None:
    """Validate runtime readiness: config parses and storage answers."""

    async def _check(service: DecisionFlowService) -> int:
        return len(await service.flow_store.list_flows())

    try:
        service = _build_service(config, db_path)
        flow_count = _run_with_service(service, _check)
        if not quiet:
            console.print(
                f"[green]OK[/green] storage={service.config.storage.backend.value} "
                f"provider={service.config.provider.type.value} flows={flow_count}"
            )
    except Exception as exc:  # noqa: BLE001
        console.print(f"[red]Healthcheck failed:[/red] {redact_text(str(exc))}")
        raise typer.Exit(code=1) from exc


@flows_app.command("list")
def flows_list(
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
    subject: str | None = typer.Option(
        None, "--subject", help="Only flows bound to this subject's group."
    ),
) -> None:
    """List stored flows."""

    async def _list(service: DecisionFlowService) -> list[Flow]:
        if subject:
            return await service.flow_store.flows_for_subject(subject)
        return await service.flow_store.list_flows()

    flows = _guarded(lambda: _run_with_service(_build_service(config, db_path), _list))
    table = Table(title="Flows")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Groups")
    table.add_column("Nodes", justify="right")
    table.add_column("Updated")
    for flow in flows:
        table.add_row(
            flow.id or "-",
            flow.name,
            ", ".join(flow.bound_subject_groups),
            str(len(flow.nodes)),
            flow.updated_at.isoformat() if flow.updated_at else "-",
        )
    console.print(table)


@flows_app.command("import")
def flows_import(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Flow JSON/YAML file."),
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
    allow_invalid: bool = typer.Option(
        False, "--allow-invalid", help="Store the flow even if graph validation fails."
    ),
) -> None:
    """Validate and store a flow definition."""
    payload = _read_document(path)

    async def _import(service: DecisionFlowService) -> tuple[Flow, list[GraphIssue]]:
        return await service.import_flow(payload, allow_invalid=allow_invalid)

    flow, issues = _guarded(lambda: _run_with_service(_build_service(config, db_path), _import))
    if issues:
        _render_issues(issues)
    console.print(f"[green]Flow stored:[/green] {flow.id} ({flow.name})")


@flows_app.command("show")
def flows_show(
    flow_id: str = typer.Argument(..., help="Flow identifier."),
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
) -> None:
    """Print a stored flow definition as JSON."""

    async def _show(service: DecisionFlowService) -> Flow | None:
        return await service.flow_store.get_flow(flow_id)

    flow = _guarded(lambda: _run_with_service(_build_service(config, db_path), _show))
    if flow is None:
        console.print(f"[red]Flow not found:[/red] {flow_id}")
        raise typer.Exit(code=1)
    console.print_json(flow.model_dump_json())


@flows_app.command("validate")
def flows_validate(
    target: str = typer.Argument(..., help="Stored flow id or path to a flow file."),
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
) -> None:
    """Run the offline graph validation pass."""
    candidate = Path(target)
    if candidate.is_file():
        flow = _guarded(lambda: Flow.model_validate(_read_document(candidate)))
    else:

        async def _load(service: DecisionFlowService) -> Flow | None:
            return await service.flow_store.get_flow(target)

        flow = _guarded(lambda: _run_with_service(_build_service(config, db_path), _load))
        if flow is None:
            console.print(f"[red]Flow not found:[/red] {target}")
            raise typer.Exit(code=1)

    issues = validate_flow(flow)
    if not issues:
        console.print(f"[green]Flow {flow.id or flow.name} is well-formed[/green]")
        return
    _render_issues(issues)
    if not is_valid(issues):
        raise typer.Exit(code=1)


@flows_app.command("delete")
def flows_delete(
    flow_id: str = typer.Argument(..., help="Flow identifier."),
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
) -> None:
    """Delete a flow and every execution state bound to it."""

    async def _delete(service: DecisionFlowService) -> int:
        return await service.flow_store.delete_flow(flow_id)

    removed = _guarded(lambda: _run_with_service(_build_service(config, db_path), _delete))
    console.print(f"Flow {flow_id} deleted; {removed} execution state(s) removed")


@app.command("state")
def state(
    subject: str = SubjectOption,
    flow: str = FlowOption,
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
) -> None:
    """Show execution state and the pending step."""

    async def _state(service: DecisionFlowService) -> tuple[ExecutionState, Flow | None]:
        current = await service.engine.get_execution_state(subject, flow)
        return current, await service.flow_store.get_flow(flow)

    current, flow_model = _guarded(
        lambda: _run_with_service(_build_service(config, db_path), _state)
    )
    _render_state(current, flow_model)


@app.command("submit")
def submit(
    subject: str = SubjectOption,
    flow: str = FlowOption,
    node: str = typer.Option(..., "--node", help="Node being answered."),
    answer: str | None = typer.Option(
        None, "--answer", help="Answer value; parsed as JSON when possible."
    ),
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
) -> None:
    """Submit an answer and advance the flow."""

    async def _submit(service: DecisionFlowService) -> tuple[ExecutionState, Flow | None]:
        flow_model = await service.flow_store.get_flow(flow)
        target = flow_model.get_node(node) if flow_model is not None else None
        parsed = _answer_for_node(target, answer)
        updated = await service.engine.submit_answer(subject, flow, node, parsed)
        return updated, flow_model

    updated, flow_model = _guarded(
        lambda: _run_with_service(_build_service(config, db_path), _submit)
    )
    _render_state(updated, flow_model)


@app.command("reset")
def reset(
    subject: str = SubjectOption,
    flow: str = FlowOption,
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
) -> None:
    """Reset execution back to the start node; the audit log is kept."""

    async def _reset(service: DecisionFlowService) -> tuple[ExecutionState, Flow | None]:
        fresh = await service.engine.reset_execution(subject, flow)
        return fresh, await service.flow_store.get_flow(flow)

    fresh, flow_model = _guarded(
        lambda: _run_with_service(_build_service(config, db_path), _reset)
    )
    _render_state(fresh, flow_model)


@app.command("audit")
def audit(
    subject: str = SubjectOption,
    flow: str = FlowOption,
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
) -> None:
    """Show executed effects, newest first."""

    async def _audit(service: DecisionFlowService) -> list[AuditEntry]:
        return await service.engine.list_audit_entries(subject, flow, newest_first=True)

    entries = _guarded(lambda: _run_with_service(_build_service(config, db_path), _audit))
    table = Table(title=f"Audit Log {subject} / {flow}")
    table.add_column("Timestamp")
    table.add_column("Node")
    table.add_column("Effect")
    table.add_column("Result")
    for entry in entries:
        if entry.result.success:
            outcome = "[green]success[/green]"
        else:
            outcome = f"[red]failed[/red] {entry.result.error or ''}"
        table.add_row(
            entry.timestamp.isoformat(),
            entry.node_id,
            entry.effect.effect_kind.value,
            outcome,
        )
    console.print(table)


@subject_app.command("show")
def subject_show(
    subject: str = SubjectOption,
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
) -> None:
    """Print locally stored subject fields."""

    async def _show(service: DecisionFlowService) -> dict[str, Any]:
        return await _stored_provider(service).read_fields(subject)

    fields = _guarded(lambda: _run_with_service(_build_service(config, db_path), _show))
    console.print_json(orjson.dumps(fields).decode("utf-8"))


@subject_app.command("set-field")
def subject_set_field(
    subject: str = SubjectOption,
    field: str = typer.Option(..., "--field", help="Field key."),
    value: str = typer.Option(..., "--value", help="Field value; parsed as JSON when possible."),
    config: Path | None = ConfigOption,
    db_path: Path | None = DbPathOption,
) -> None:
    """Set a field on a locally stored subject."""
    parsed = _parse_answer(value)

    async def _set(service: DecisionFlowService) -> Any:
        return await _stored_provider(service).write_field(subject, field, parsed)

    _guarded(lambda: _run_with_service(_build_service(config, db_path), _set))
    console.print(f"{subject}.{field} = {parsed!r}")


def _build_service(config: Path | None, db_path: Path | None) -> DecisionFlowService:
    return DecisionFlowService.from_config_path(
        config,
        cli_overrides={"db_path": db_path} if db_path is not None else None,
    )


def _run_with_service(
    service: DecisionFlowService,
    operation: Callable[[DecisionFlowService], Awaitable[T]],
) -> T:
    async def _runner() -> T:
        try:
            return await operation(service)
        finally:
            await service.aclose()

    return asyncio.run(_runner())


def _guarded(action: Callable[[], T]) -> T:
    try:
        return action()
    except typer.Exit:
        raise
    except DecisionFlowError as exc:
        payload = exc.to_payload()
        console.print(f"[red]{payload['error']}:[/red] {redact_text(payload['message'])}")
        raise typer.Exit(code=1) from exc
    except Exception as exc:  # noqa: BLE001
        console.print(f"[red]Command failed:[/red] {redact_text(str(exc))}")
        raise typer.Exit(code=1) from exc


def _stored_provider(service: DecisionFlowService) -> StoredSubjectFieldProvider:
    if not isinstance(service.provider, StoredSubjectFieldProvider):
        raise typer.BadParameter("Subject commands require the stored provider.")
    return service.provider


def _read_document(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise typer.BadParameter(f"{path} must contain a flow mapping")
    return data


def _parse_answer(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError:
        return raw


def _answer_for_node(node: Node | None, raw: str | None) -> Any:
    """Parse ``--answer``; choice and date questions keep non-string JSON as typed text."""
    parsed = _parse_answer(raw)
    if (
        raw is not None
        and isinstance(node, QuestionNode)
        and node.data.answer_kind in TEXT_ANSWER_KINDS
        and not isinstance(parsed, str)
    ):
        return raw
    return parsed


def _render_issues(issues: list[GraphIssue]) -> None:
    table = Table(title="Graph Validation")
    table.add_column("Severity")
    table.add_column("Code")
    table.add_column("Node/Edge")
    table.add_column("Message")
    for issue in issues:
        color = "red" if issue.severity.value == "error" else "yellow"
        table.add_row(
            f"[{color}]{issue.severity.value}[/{color}]",
            issue.code,
            issue.node_id or issue.edge_id or "-",
            issue.message,
        )
    console.print(table)


def _render_state(state: ExecutionState, flow: Flow | None) -> None:
    table = Table(title="Execution State")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("completed", str(state.completed))
    table.add_row("current_node_id", state.current_node_id)
    table.add_row(
        "last_action_succeeded",
        "-" if state.last_action_succeeded is None else str(state.last_action_succeeded),
    )
    table.add_row("path", " -> ".join(state.path) or "-")
    table.add_row("answers", orjson.dumps(state.answers).decode("utf-8"))
    table.add_row("version", str(state.version))
    console.print(table)

    if flow is None or state.completed:
        return
    node = flow.get_node(state.current_node_id)
    if isinstance(node, QuestionNode):
        body = f"[bold]{node.data.prompt}[/bold]\nkind: {node.data.answer_kind.value}"
        if node.data.choices:
            body += "\nchoices: " + ", ".join(node.data.choices)
        console.print(Panel.fit(body, title=f"Pending question {node.id}"))
    elif node is not None:
        console.print(
            Panel.fit(f"Submit to node {node.id} to begin", title="Pending start")
        )
