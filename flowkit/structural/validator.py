# flowkit/structural/validator.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set

from flowkit.models.workflow import Workflow
from flowkit.utils.graph import build_graph, isolated_names, self_loops


class Severity(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"


@dataclass
class ValidationIssue:
    severity: Severity
    message: str
    node: Optional[str] = None

    def __str__(self) -> str:
        node_info = f" [{self.node}]" if self.node is not None else ""
        return f"{self.severity.value}{node_info}: {self.message}"


@dataclass
class ValidationResult:
    issues: List[ValidationIssue] = field(default_factory=list)

    def is_valid(self) -> bool:
        """Warnings never make a workflow invalid."""
        return not any(i.severity is Severity.ERROR for i in self.issues)

    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity is Severity.ERROR]

    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity is Severity.WARNING]

    def format(self, include_warnings: bool = False) -> str:
        return "\n".join(
            str(i) for i in self.issues
            if include_warnings or i.severity is not Severity.WARNING
        )

    def to_dict(self) -> dict:
        return {
            "valid": self.is_valid(),
            "issues": [
                {"severity": i.severity.value, "message": i.message, "node": i.node}
                for i in self.issues
            ],
        }


def _error(message: str, node: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(Severity.ERROR, message, node)


def _warning(message: str, node: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(Severity.WARNING, message, node)


def validate_workflow(workflow: Workflow) -> ValidationResult:
    """
    Lint a workflow graph. Never raises and never mutates the workflow.

    Every rule runs independently, except that an empty workflow only yields
    the "no nodes" warning.
    """
    issues: List[ValidationIssue] = []

    if not workflow.nodes:
        issues.append(_warning("Workflow has no nodes"))
        return ValidationResult(issues)

    # 1) Duplicates (first occurrence is fine, every repeat is flagged)
    seen_ids: Set[str] = set()
    for n in workflow.nodes:
        if n.id in seen_ids:
            issues.append(_error(f"Duplicate node ID: {n.id}", n.name))
        seen_ids.add(n.id)

    # n8n wires edges by name, so a repeated name makes edges ambiguous
    seen_names: Set[str] = set()
    for n in workflow.nodes:
        if n.name in seen_names:
            issues.append(_error(f"Duplicate node name: {n.name}", n.name))
        seen_names.add(n.name)

    # 2) Entry point
    if not workflow.has_trigger():
        issues.append(_warning("No trigger node found. Workflow can only be executed manually."))

    # 3) Dangling references
    edges = workflow.connections_flat()
    for e in edges:
        if e.source_node not in seen_names:
            issues.append(_error(f"Connection references non-existent source node: {e.source_node}", e.source_node))
        if e.target_node not in seen_names:
            issues.append(_error(f"Connection references non-existent target node: {e.target_node}", e.target_node))

    # 4) Connectivity (triggers may legitimately stand alone)
    G = build_graph(workflow)
    isolated = set(isolated_names(G))
    for n in workflow.nodes:
        if not n.is_trigger and n.name in isolated:
            issues.append(_warning(f"Node '{n.name}' is not connected to any other node", n.name))

    for name in self_loops(G):
        issues.append(_warning(f"Node '{name}' has a self-loop connection", name))

    # 5) Names
    for n in workflow.nodes:
        if not n.name.strip():
            issues.append(_error("Node has empty name", n.id))

    if not workflow.name.strip():
        issues.append(_error("Workflow has empty name"))

    return ValidationResult(issues)
