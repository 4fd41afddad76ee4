# flowkit/diff/workflow_diff.py
"""
Structural diff between two snapshots of the same workflow.

Nodes are matched by id, so a renamed node shows up as modified (NameChanged)
rather than removed + added. Edges are matched by
(source name, source output, target name, target input); a node rename
therefore also reports its edges as removed and re-added, which is how n8n
itself stores them.
"""

from __future__ import annotations

import difflib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from flowkit.models.connection import Connection
from flowkit.models.node import Node
from flowkit.models.workflow import Workflow


@dataclass(frozen=True)
class NameChanged:
    old: str
    new: str

    def describe(self) -> str:
        return f'name: "{self.old}" -> "{self.new}"'


@dataclass(frozen=True)
class TypeChanged:
    old: str
    new: str

    def describe(self) -> str:
        return f"type: {self.old} -> {self.new}"


@dataclass(frozen=True)
class PositionChanged:
    old: Tuple[int, int]
    new: Tuple[int, int]

    def describe(self) -> str:
        return f"position: ({self.old[0]},{self.old[1]}) -> ({self.new[0]},{self.new[1]})"


@dataclass(frozen=True)
class DisabledChanged:
    old: bool
    new: bool

    def describe(self) -> str:
        return f"disabled: {str(self.old).lower()} -> {str(self.new).lower()}"


@dataclass(frozen=True)
class ParametersChanged:
    diff: str  # unified line diff of the pretty-printed parameters

    def describe(self) -> str:
        return "parameters: (modified)"


NodeChange = Union[NameChanged, TypeChanged, PositionChanged, DisabledChanged, ParametersChanged]


@dataclass
class NodeDiff:
    node_id: str
    node_name: str
    changes: List[NodeChange] = field(default_factory=list)


def canonical_params(parameters: Any) -> str:
    # key order is not significant
    return json.dumps(parameters, indent=2, sort_keys=True, ensure_ascii=False)


def unified_lines(old_text: str, new_text: str) -> str:
    """
    Line diff of two texts, every line prefixed with '-', '+' or ' '.

    Unlike difflib.unified_diff there are no hunk headers and no context
    trimming: the whole text is shown, which keeps parameter blocks readable.
    """
    a = old_text.splitlines()
    b = new_text.splitlines()
    out: List[str] = []
    for tag, i1, i2, j1, j2 in difflib.SequenceMatcher(None, a, b, autojunk=False).get_opcodes():
        if tag == "equal":
            out.extend(" " + line for line in a[i1:i2])
            continue
        if tag in ("replace", "delete"):
            out.extend("-" + line for line in a[i1:i2])
        if tag in ("replace", "insert"):
            out.extend("+" + line for line in b[j1:j2])
    return "".join(line + "\n" for line in out)


def compare_nodes(old: Node, new: Node) -> Optional[NodeDiff]:
    changes: List[NodeChange] = []

    if old.name != new.name:
        changes.append(NameChanged(old.name, new.name))
    if old.type != new.type:
        changes.append(TypeChanged(old.type, new.type))
    if old.position != new.position:
        changes.append(PositionChanged(old.position.as_tuple(), new.position.as_tuple()))
    if old.disabled != new.disabled:
        changes.append(DisabledChanged(old.disabled, new.disabled))

    old_params = canonical_params(old.parameters)
    new_params = canonical_params(new.parameters)
    if old_params != new_params:
        changes.append(ParametersChanged(unified_lines(old_params, new_params)))

    if not changes:
        return None
    return NodeDiff(node_id=old.id, node_name=old.name, changes=changes)


@dataclass
class WorkflowDiff:
    name_changed: Optional[Tuple[str, str]] = None
    active_changed: Optional[Tuple[bool, bool]] = None
    nodes_added: List[Node] = field(default_factory=list)
    nodes_removed: List[Node] = field(default_factory=list)
    nodes_modified: List[NodeDiff] = field(default_factory=list)
    connections_added: List[Connection] = field(default_factory=list)
    connections_removed: List[Connection] = field(default_factory=list)

    @classmethod
    def compare(cls, old: Workflow, new: Workflow) -> "WorkflowDiff":
        return compare(old, new)

    def is_empty(self) -> bool:
        return (
            self.name_changed is None
            and self.active_changed is None
            and not self.nodes_added
            and not self.nodes_removed
            and not self.nodes_modified
            and not self.connections_added
            and not self.connections_removed
        )

    # ---------- rendering ----------

    def summary_lines(self) -> List[str]:
        if self.is_empty():
            return ["No differences found."]

        lines: List[str] = []
        if self.name_changed:
            lines.append(f'  Name: "{self.name_changed[0]}" -> "{self.name_changed[1]}"')
        if self.active_changed:
            old, new = (str(v).lower() for v in self.active_changed)
            lines.append(f"  Active: {old} -> {new}")

        if self.nodes_added:
            lines += ["", f"+ Added {len(self.nodes_added)} node(s):"]
            lines += [f"  + {n.name} ({n.type})" for n in self.nodes_added]
        if self.nodes_removed:
            lines += ["", f"- Removed {len(self.nodes_removed)} node(s):"]
            lines += [f"  - {n.name} ({n.type})" for n in self.nodes_removed]
        if self.nodes_modified:
            lines += ["", f"~ Modified {len(self.nodes_modified)} node(s):"]
            for nd in self.nodes_modified:
                lines.append(f"  ~ {nd.node_name}")
                lines += [f"    {c.describe()}" for c in nd.changes]

        if self.connections_added:
            lines += ["", f"+ Added {len(self.connections_added)} connection(s):"]
            lines += [f"  + {c.source_node} -> {c.target_node}" for c in self.connections_added]
        if self.connections_removed:
            lines += ["", f"- Removed {len(self.connections_removed)} connection(s):"]
            lines += [f"  - {c.source_node} -> {c.target_node}" for c in self.connections_removed]
        return lines

    def full_lines(self) -> List[str]:
        lines = self.summary_lines()
        for nd in self.nodes_modified:
            for c in nd.changes:
                if isinstance(c, ParametersChanged):
                    lines += ["", f"--- {nd.node_name} parameters ---", c.diff.rstrip("\n")]
        return lines

    def format_summary(self) -> str:
        return "\n".join(self.summary_lines())

    def format_full(self) -> str:
        return "\n".join(self.full_lines())

    def print_summary(self) -> None:
        print(self.format_summary())

    def print_full(self) -> None:
        print(self.format_full())

    def to_dict(self) -> Dict[str, Any]:
        def _change(c: NodeChange) -> Dict[str, Any]:
            kind = type(c).__name__
            if isinstance(c, ParametersChanged):
                return {"kind": kind, "diff": c.diff}
            return {"kind": kind, "old": c.old, "new": c.new}

        return {
            "nameChanged": list(self.name_changed) if self.name_changed else None,
            "activeChanged": list(self.active_changed) if self.active_changed else None,
            "nodesAdded": [n.to_dict() for n in self.nodes_added],
            "nodesRemoved": [n.to_dict() for n in self.nodes_removed],
            "nodesModified": [
                {"id": nd.node_id, "name": nd.node_name, "changes": [_change(c) for c in nd.changes]}
                for nd in self.nodes_modified
            ],
            "connectionsAdded": [c.to_dict() for c in self.connections_added],
            "connectionsRemoved": [c.to_dict() for c in self.connections_removed],
        }


def compare(old: Workflow, new: Workflow) -> WorkflowDiff:
    """Diff two workflow snapshots. Never raises for decodable workflows."""
    diff = WorkflowDiff()

    if old.name != new.name:
        diff.name_changed = (old.name, new.name)
    if old.active != new.active:
        diff.active_changed = (old.active, new.active)

    # Index by id; with duplicate ids the last node wins, the validator flags those
    old_nodes: Dict[str, Node] = {n.id: n for n in old.nodes}
    new_nodes: Dict[str, Node] = {n.id: n for n in new.nodes}

    diff.nodes_added = [n for nid, n in new_nodes.items() if nid not in old_nodes]
    diff.nodes_removed = [n for nid, n in old_nodes.items() if nid not in new_nodes]
    for nid, old_node in old_nodes.items():
        new_node = new_nodes.get(nid)
        if new_node is None:
            continue
        nd = compare_nodes(old_node, new_node)
        if nd is not None:
            diff.nodes_modified.append(nd)

    old_edges = old.connections_flat()
    new_edges = new.connections_flat()
    old_keys = {e.key for e in old_edges}
    new_keys = {e.key for e in new_edges}
    diff.connections_added = [e for e in new_edges if e.key not in old_keys]
    diff.connections_removed = [e for e in old_edges if e.key not in new_keys]

    return diff
