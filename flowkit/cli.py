#!/usr/bin/env python3
# flowkit/cli.py

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer

from flowkit.diff.workflow_diff import compare
from flowkit.errors import (
    ConnectionNotFoundError,
    FlowkitError,
    NodeNotFoundError,
    NoChangesError,
    ValidationFailedError,
)
from flowkit.models.connection import Connection
from flowkit.models.node import Node, Position
from flowkit.models.workflow import Workflow
from flowkit.structural.validator import validate_workflow
from flowkit.utils.graph import graph_stats
from flowkit.utils.io import read_workflow, write_workflow
from flowkit.utils.logger import get_logger, set_level

logger = get_logger("cli")

app = typer.Typer(help="flowkit - inspect, edit, diff and lint n8n workflow files")
nodes_app = typer.Typer(help="List and edit the nodes of a workflow file")
connections_app = typer.Typer(help="List and edit the connections of a workflow file")
app.add_typer(nodes_app, name="nodes")
app.add_typer(connections_app, name="connections")

EXIT_CANCELLED = 130


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs")):
    if verbose:
        set_level(logging.DEBUG)


@contextmanager
def _handle_errors():
    """Turn flowkit errors into a message on stderr and a sysexits exit code."""
    try:
        yield
    except NoChangesError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(e.exit_code)
    except FlowkitError as e:
        logger.debug("command failed", exc_info=True)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(e.exit_code)


def parse_position(value: Optional[str]) -> Optional[Position]:
    """Parse 'x,y' into a Position."""
    if value is None:
        return None
    parts = value.split(",")
    if len(parts) != 2:
        raise typer.BadParameter("Position must be in format 'x,y'")
    try:
        return Position(int(parts[0].strip()), int(parts[1].strip()))
    except ValueError:
        raise typer.BadParameter(f"Invalid coordinates in '{value}'")


def parse_config(config: Optional[str], config_file: Optional[Path]):
    if config is not None and config_file is not None:
        raise typer.BadParameter("--config and --config-file are mutually exclusive")
    text = config if config is not None else (
        config_file.read_text(encoding="utf-8") if config_file is not None else None
    )
    if text is None:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Node parameters are not valid JSON: {e}")


def _save(wf: Workflow, file: Path, out: Optional[Path], no_validate: bool) -> None:
    """Validate (unless disabled) and write the workflow back."""
    if not no_validate:
        result = validate_workflow(wf)
        if not result.is_valid():
            raise ValidationFailedError(result.format())
    target = out or file
    write_workflow(wf, target)
    logger.info("saved workflow '%s' to %s", wf.name, target)


def _require_node(wf: Workflow, node_ref: str) -> Node:
    node = wf.find_node(node_ref)
    if node is None:
        raise NodeNotFoundError(node_ref)
    return node


def _echo_json(data) -> None:
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


# ---------------- top-level commands ----------------

@app.command()
def validate(
    file: Path = typer.Argument(..., exists=True, readable=True, help="Path to n8n workflow JSON/YAML"),
    warnings: bool = typer.Option(False, "--warnings", "-w", help="Also show warnings"),
    as_json: bool = typer.Option(False, "--json", help="Print the issues as JSON"),
):
    """
    Lint a workflow: duplicate ids/names, dangling connections, orphan nodes,
    self-loops, missing trigger. Exits 65 when any error is found.
    """
    with _handle_errors():
        wf = read_workflow(file)
        result = validate_workflow(wf)

        if as_json:
            _echo_json(result.to_dict())
        else:
            report = result.format(include_warnings=warnings)
            if report:
                typer.echo(report)
            n_err, n_warn = len(result.errors()), len(result.warnings())
            if result.is_valid():
                typer.echo(f"Workflow '{wf.name}' is valid ({n_warn} warning(s))")
            else:
                typer.echo(f"Workflow '{wf.name}' is invalid: {n_err} error(s), {n_warn} warning(s)")

        if not result.is_valid():
            raise typer.Exit(ValidationFailedError.exit_code)


@app.command()
def diff(
    old: Path = typer.Argument(..., exists=True, readable=True, help="Old workflow file"),
    new: Path = typer.Argument(..., exists=True, readable=True, help="New workflow file"),
    full: bool = typer.Option(False, "--full", "-f", help="Include parameter diffs"),
    as_json: bool = typer.Option(False, "--json", help="Print the diff as JSON"),
):
    """Show what changed between two snapshots of a workflow."""
    with _handle_errors():
        d = compare(read_workflow(old), read_workflow(new))
        if as_json:
            _echo_json(d.to_dict())
        elif full:
            d.print_full()
        else:
            d.print_summary()


@app.command()
def stats(file: Path = typer.Argument(..., exists=True, readable=True)):
    """Graph statistics: size, triggers, cycles, components."""
    with _handle_errors():
        _echo_json(graph_stats(read_workflow(file)))


# ---------------- nodes ----------------

@nodes_app.command("list")
def nodes_list(
    file: Path = typer.Argument(..., exists=True, readable=True),
    as_json: bool = typer.Option(False, "--json", help="Print nodes as JSON"),
):
    with _handle_errors():
        wf = read_workflow(file)
        if as_json:
            _echo_json([n.to_dict() for n in wf.nodes])
            return
        for n in wf.nodes:
            flag = " (disabled)" if n.disabled else ""
            typer.echo(f"{n.id}\t{n.name}\t{n.type}\t{n.position.x},{n.position.y}{flag}")


@nodes_app.command("get")
def nodes_get(
    file: Path = typer.Argument(..., exists=True, readable=True),
    node: str = typer.Argument(..., help="Node id or name"),
):
    with _handle_errors():
        _echo_json(_require_node(read_workflow(file), node).to_dict())


@nodes_app.command("add")
def nodes_add(
    file: Path = typer.Argument(..., exists=True, readable=True),
    node_type: str = typer.Option(..., "--type", "-t", help="Node type, e.g. n8n-nodes-base.httpRequest"),
    name: str = typer.Option(..., "--name", "-n", help="Display name (used by connections)"),
    position: Optional[str] = typer.Option(None, "--position", help="x,y (default: right of the last node)"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Node parameters as JSON"),
    config_file: Optional[Path] = typer.Option(
        None, "--config-file", exists=True, readable=True, help="Read node parameters from a JSON file"
    ),
    disabled: bool = typer.Option(False, "--disabled", help="Add the node disabled"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write here instead of in place"),
    no_validate: bool = typer.Option(False, "--no-validate", help="Skip validation before saving"),
):
    """Add a node. It is not connected to anything."""
    pos = parse_position(position)
    params = parse_config(config, config_file)
    with _handle_errors():
        wf = read_workflow(file)
        node = Node.create(
            name,
            node_type,
            position=pos or wf.auto_position(),
            parameters=params if params is not None else {},
            disabled=disabled,
        )
        wf.add_node(node)
        _save(wf, file, out, no_validate)
        typer.echo(f"Added node '{node.name}' ({node.id}) to workflow")


@nodes_app.command("remove")
def nodes_remove(
    file: Path = typer.Argument(..., exists=True, readable=True),
    node: str = typer.Argument(..., help="Node id or name"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation"),
    out: Optional[Path] = typer.Option(None, "--out", "-o"),
    no_validate: bool = typer.Option(False, "--no-validate"),
):
    """Remove a node and every connection into or out of it."""
    with _handle_errors():
        wf = read_workflow(file)
        name = _require_node(wf, node).name
        if not force and not typer.confirm(f"Remove node '{name}'?"):
            typer.echo("Operation cancelled by user", err=True)
            raise typer.Exit(EXIT_CANCELLED)
        wf.remove_node(node)
        _save(wf, file, out, no_validate)
        typer.echo(f"Removed node '{name}' from workflow")


@nodes_app.command("update")
def nodes_update(
    file: Path = typer.Argument(..., exists=True, readable=True),
    node: str = typer.Argument(..., help="Node id or name"),
    name: Optional[str] = typer.Option(None, "--name", help="New display name; connections follow"),
    position: Optional[str] = typer.Option(None, "--position", help="x,y"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Parameters JSON, merged into existing"),
    replace: bool = typer.Option(False, "--replace", help="Replace parameters instead of merging"),
    disabled: Optional[bool] = typer.Option(None, "--disabled/--enabled", help="Disable or enable the node"),
    out: Optional[Path] = typer.Option(None, "--out", "-o"),
    no_validate: bool = typer.Option(False, "--no-validate"),
):
    pos = parse_position(position)
    params = parse_config(config, None)
    with _handle_errors():
        if name is None and pos is None and params is None and disabled is None:
            raise NoChangesError("Nothing to update")
        wf = read_workflow(file)
        _require_node(wf, node)
        updated = wf.update_node(node, name=name, position=pos, parameters=params,
                                 replace=replace, disabled=disabled)
        _save(wf, file, out, no_validate)
        typer.echo(f"Updated node '{updated.name}'")


@nodes_app.command("move")
def nodes_move(
    file: Path = typer.Argument(..., exists=True, readable=True),
    node: str = typer.Argument(..., help="Node id or name"),
    position: str = typer.Argument(..., help="x,y"),
    out: Optional[Path] = typer.Option(None, "--out", "-o"),
    no_validate: bool = typer.Option(False, "--no-validate"),
):
    pos = parse_position(position)
    with _handle_errors():
        wf = read_workflow(file)
        _require_node(wf, node)
        moved = wf.move_node(node, pos)
        _save(wf, file, out, no_validate)
        typer.echo(f"Moved node '{moved.name}' to ({pos.x},{pos.y})")


# ---------------- connections ----------------

@connections_app.command("list")
def connections_list(
    file: Path = typer.Argument(..., exists=True, readable=True),
    source: Optional[str] = typer.Option(None, "--from", help="Only connections from this node"),
    target: Optional[str] = typer.Option(None, "--to", help="Only connections into this node"),
    as_json: bool = typer.Option(False, "--json"),
):
    with _handle_errors():
        wf = read_workflow(file)
        edges = wf.connections_flat()
        if source is not None:
            src = wf.get_node_name(source) or source
            edges = [e for e in edges if e.source_node == src]
        if target is not None:
            tgt = wf.get_node_name(target) or target
            edges = [e for e in edges if e.target_node == tgt]

        if as_json:
            _echo_json([e.to_dict() for e in edges])
        else:
            for e in edges:
                typer.echo(str(e))


@connections_app.command("add")
def connections_add(
    file: Path = typer.Argument(..., exists=True, readable=True),
    source: str = typer.Option(..., "--from", help="Source node id or name"),
    target: str = typer.Option(..., "--to", help="Target node id or name"),
    output_index: int = typer.Option(0, "--output-index", min=0),
    input_index: int = typer.Option(0, "--input-index", min=0),
    port_type: str = typer.Option("main", "--type", help="Connection type"),
    out: Optional[Path] = typer.Option(None, "--out", "-o"),
    no_validate: bool = typer.Option(False, "--no-validate"),
):
    with _handle_errors():
        wf = read_workflow(file)
        # adding an edge to an unknown node would only create a dangling reference
        src = _require_node(wf, source).name
        tgt = _require_node(wf, target).name
        edge = wf.add_connection(Connection(
            source_node=src,
            target_node=tgt,
            source_output=output_index,
            target_input=input_index,
            source_type=port_type,
            target_type=port_type,
        ))
        _save(wf, file, out, no_validate)
        typer.echo(f"Added connection: {edge.source_node} -> {edge.target_node}")


@connections_app.command("remove")
def connections_remove(
    file: Path = typer.Argument(..., exists=True, readable=True),
    source: str = typer.Option(..., "--from", help="Source node id or name"),
    target: str = typer.Option(..., "--to", help="Target node id or name"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation"),
    out: Optional[Path] = typer.Option(None, "--out", "-o"),
    no_validate: bool = typer.Option(False, "--no-validate"),
):
    """Remove every connection from one node to another."""
    with _handle_errors():
        wf = read_workflow(file)
        src = wf.get_node_name(source) or source
        tgt = wf.get_node_name(target) or target
        if not force and not typer.confirm(f"Remove connection {src} -> {tgt}?"):
            typer.echo("Operation cancelled by user", err=True)
            raise typer.Exit(EXIT_CANCELLED)
        if not wf.remove_connection(source, target):
            raise ConnectionNotFoundError(src, tgt)
        _save(wf, file, out, no_validate)
        typer.echo(f"Removed connection: {src} -> {tgt}")


if __name__ == "__main__":
    app()
