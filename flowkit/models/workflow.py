# flowkit/models/workflow.py

from __future__ import annotations

import json
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import validate, ValidationError

from flowkit.errors import WorkflowDecodeError
from flowkit.models import connection as conn
from flowkit.models.connection import Connection, ConnectionsMap
from flowkit.models.node import Node, Position
from flowkit.models.schema import N8N_WORKFLOW_SCHEMA

# Where auto_position() drops new nodes relative to the right-most one
AUTO_POSITION_DX = 200
AUTO_POSITION_Y = 100


_WORKFLOW_KEYS = ("id", "name", "active", "nodes", "connections", "settings", "tags", "versionId")

# wire key -> attribute
_SETTINGS_FIELDS = OrderedDict([
    ("saveExecutionProgress", "save_execution_progress"),
    ("saveDataErrorExecution", "save_data_error_execution"),
    ("saveDataSuccessExecution", "save_data_success_execution"),
    ("saveManualExecutions", "save_manual_executions"),
    ("timezone", "timezone"),
    ("errorWorkflow", "error_workflow"),
    ("executionTimeout", "execution_timeout"),
    ("executionOrder", "execution_order"),
])


@dataclass
class WorkflowSettings:
    save_execution_progress: Optional[bool] = None
    save_data_error_execution: Optional[str] = None
    save_data_success_execution: Optional[str] = None
    save_manual_executions: Optional[bool] = None
    timezone: Optional[str] = None
    error_workflow: Optional[str] = None
    execution_timeout: Optional[int] = None
    execution_order: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=OrderedDict)

    @classmethod
    def from_dict(cls, data: Any) -> "WorkflowSettings":
        # Unusable settings are dropped rather than failing the whole document
        if not isinstance(data, dict):
            return cls()
        known = {attr: data.get(key) for key, attr in _SETTINGS_FIELDS.items()}
        extra = OrderedDict((k, v) for k, v in data.items() if k not in _SETTINGS_FIELDS)
        return cls(extra=extra, **known)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, attr in _SETTINGS_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        for k, v in self.extra.items():
            out.setdefault(k, v)
        return out


@dataclass
class WorkflowTag:
    id: str
    name: str = ""
    extra: Dict[str, Any] = field(default_factory=OrderedDict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowTag":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            extra=OrderedDict((k, v) for k, v in data.items() if k not in ("id", "name")),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {"id": self.id, "name": self.name}
        for k, v in self.extra.items():
            out.setdefault(k, v)
        return out


@dataclass
class Workflow:
    """
    A workflow graph: ordered nodes plus the name-keyed adjacency index.

    Edges only ever store node names (that is what n8n expects on upload), so
    every operation that renames or removes a node cascades through
    `connections` before returning. Lookups that miss return None/False; the
    caller decides whether that is an error.
    """
    name: str
    nodes: List[Node] = field(default_factory=list)
    connections: ConnectionsMap = field(default_factory=dict)
    active: bool = False
    settings: WorkflowSettings = field(default_factory=WorkflowSettings)
    tags: List[WorkflowTag] = field(default_factory=list)
    id: Optional[str] = None
    version_id: Optional[str] = None
    # top-level keys flowkit does not model (pinData, meta, staticData, ...)
    extra: Dict[str, Any] = field(default_factory=OrderedDict)

    # ---------- decode / encode ----------

    @classmethod
    def from_dict(cls, data: Any) -> "Workflow":
        """Decode an n8n workflow document. Raises WorkflowDecodeError on bad shape."""
        try:
            validate(instance=data, schema=N8N_WORKFLOW_SCHEMA)
        except ValidationError as e:
            where = "/".join(str(p) for p in e.absolute_path) or "<root>"
            raise WorkflowDecodeError(f"Invalid workflow at {where}: {e.message}") from e

        wf_id = data.get("id")
        return cls(
            id=None if wf_id is None else str(wf_id),
            name=data["name"],
            active=bool(data.get("active", False)),
            nodes=[Node.from_dict(n) for n in data["nodes"]],
            connections=conn.decode_connections(data["connections"]),
            settings=WorkflowSettings.from_dict(data.get("settings")),
            tags=[WorkflowTag.from_dict(t) for t in data.get("tags") or []],
            version_id=data.get("versionId"),
            extra=OrderedDict((k, v) for k, v in data.items() if k not in _WORKFLOW_KEYS),
        )

    @classmethod
    def from_json(cls, text: str) -> "Workflow":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise WorkflowDecodeError(f"Failed to parse workflow JSON: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.id is not None:
            out["id"] = self.id
        out["name"] = self.name
        out["active"] = self.active
        out["nodes"] = [n.to_dict() for n in self.nodes]
        out["connections"] = conn.encode_connections(self.connections)
        out["settings"] = self.settings.to_dict()
        if self.tags:
            out["tags"] = [t.to_dict() for t in self.tags]
        if self.version_id is not None:
            out["versionId"] = self.version_id
        for k, v in self.extra.items():
            out.setdefault(k, v)
        return out

    def to_definition(self) -> Dict[str, Any]:
        """Body accepted by the n8n update/create endpoints."""
        return {
            "name": self.name,
            "nodes": [n.to_dict() for n in self.nodes],
            "connections": conn.encode_connections(self.connections),
            "settings": self.settings.to_dict(),
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)

    # ---------- lookup ----------

    def find_node(self, node_ref: str) -> Optional[Node]:
        """Resolve by id first, then by exact display name."""
        for n in self.nodes:
            if n.id == node_ref:
                return n
        for n in self.nodes:
            if n.name == node_ref:
                return n
        return None

    def get_node_name(self, node_ref: str) -> Optional[str]:
        node = self.find_node(node_ref)
        return node.name if node is not None else None

    def node_names(self) -> List[str]:
        return [n.name for n in self.nodes]

    def has_trigger(self) -> bool:
        return any(n.is_trigger for n in self.nodes)

    def connections_flat(self) -> List[Connection]:
        return conn.flatten(self.connections)

    def auto_position(self) -> Position:
        """Free spot to the right of the right-most node."""
        max_x = max((n.position.x for n in self.nodes), default=0)
        return Position(max_x + AUTO_POSITION_DX, AUTO_POSITION_Y)

    # ---------- node mutation ----------

    def add_node(self, node: Node) -> Node:
        self.nodes.append(node)
        return node

    def remove_node(self, node_ref: str) -> Optional[Node]:
        node = self.find_node(node_ref)
        if node is None:
            return None
        conn.drop_node(self.connections, node.name)
        # identity, not equality: two nodes may compare equal field by field
        idx = next(i for i, n in enumerate(self.nodes) if n is node)
        return self.nodes.pop(idx)

    def rename_node_in_connections(self, old_name: str, new_name: str) -> None:
        conn.rename_node(self.connections, old_name, new_name)

    def rename_node(self, node_ref: str, new_name: str) -> Optional[Node]:
        node = self.find_node(node_ref)
        if node is None:
            return None
        self._rename(node, new_name)
        return node

    def _rename(self, node: Node, new_name: str) -> None:
        old_name = node.name
        node.name = new_name
        if old_name != new_name:
            self.rename_node_in_connections(old_name, new_name)

    def move_node(self, node_ref: str, position: Position) -> Optional[Node]:
        node = self.find_node(node_ref)
        if node is None:
            return None
        node.position = position
        return node

    def update_node(
        self,
        node_ref: str,
        name: Optional[str] = None,
        position: Optional[Position] = None,
        parameters: Any = None,
        replace: bool = False,
        disabled: Optional[bool] = None,
    ) -> Optional[Node]:
        """
        Apply a partial update to one node.

        `parameters` are merged key by key into the existing object unless
        `replace` is set (or either side is not an object, in which case the
        new value replaces the old one). Renames cascade through the edges.
        """
        node = self.find_node(node_ref)
        if node is None:
            return None

        if position is not None:
            node.position = position
        if parameters is not None:
            if not replace and isinstance(node.parameters, dict) and isinstance(parameters, dict):
                node.parameters.update(parameters)
            else:
                node.parameters = parameters
        if disabled is not None:
            node.disabled = disabled
        if name is not None:
            self._rename(node, name)
        return node

    # ---------- edge mutation ----------

    def _resolve(self, node_ref: str) -> str:
        # Unknown refs are used verbatim so stale or foreign names stay addressable
        return self.get_node_name(node_ref) or node_ref

    def add_connection(self, edge: Connection) -> Connection:
        resolved = Connection(
            source_node=self._resolve(edge.source_node),
            target_node=self._resolve(edge.target_node),
            source_output=edge.source_output,
            target_input=edge.target_input,
            source_type=edge.source_type,
            target_type=edge.target_type,
        )
        conn.add_edge(self.connections, resolved)
        return resolved

    def remove_connection(self, from_ref: str, to_ref: str) -> bool:
        return conn.remove_edges(self.connections, self._resolve(from_ref), self._resolve(to_ref))
