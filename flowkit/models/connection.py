# flowkit/models/connection.py
"""
Edges in their two shapes.

n8n stores connections as a nested adjacency index keyed by node *name*:

    connections[<source name>][<port type>] = [
        [ {"node": "B", "type": "main", "index": 0}, {"node": "C", ...} ],  # output 0 (fan-out)
        [],                                                                  # output 1 (unused)
        [ {"node": "D", "type": "main", "index": 0} ],                      # output 2
    ]

The position in the outer list is the source output index. Code that edits edges
works on the flat `Connection` form and folds changes back into the index.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from flowkit.errors import WorkflowDecodeError

DEFAULT_TYPE = "main"


@dataclass
class ConnectionEndpoint:
    node: str
    type: str = DEFAULT_TYPE
    index: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionEndpoint":
        if not isinstance(data, dict) or "node" not in data:
            raise WorkflowDecodeError(f"connection endpoint must be an object with 'node', got {data!r}")
        return cls(
            node=data["node"],
            type=data.get("type") or DEFAULT_TYPE,
            index=int(data.get("index") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"node": self.node, "type": self.type, "index": self.index}


# source name -> port type -> output index -> fan-out endpoints
ConnectionsMap = Dict[str, Dict[str, List[List[ConnectionEndpoint]]]]


@dataclass(frozen=True)
class Connection:
    """One directed edge, flat form. Nodes are referenced by name."""
    source_node: str
    target_node: str
    source_output: int = 0
    target_input: int = 0
    source_type: str = DEFAULT_TYPE
    target_type: str = DEFAULT_TYPE

    @property
    def key(self):
        """Identity used when comparing edge sets; port types are not part of it."""
        return (self.source_node, self.source_output, self.target_node, self.target_input)

    def endpoint(self) -> ConnectionEndpoint:
        return ConnectionEndpoint(node=self.target_node, type=self.target_type, index=self.target_input)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source_node,
            "sourceOutput": self.source_output,
            "sourceType": self.source_type,
            "target": self.target_node,
            "targetInput": self.target_input,
            "targetType": self.target_type,
        }

    def __str__(self) -> str:
        return (
            f"{self.source_node} {self.source_type}[{self.source_output}] -> "
            f"{self.target_node} {self.target_type}[{self.target_input}]"
        )


def flatten(index: ConnectionsMap) -> List[Connection]:
    """Enumerate every endpoint of the nested index as a flat edge."""
    edges: List[Connection] = []
    for src_name, outputs in index.items():
        for port_type, slots in outputs.items():
            for out_idx, targets in enumerate(slots):
                for t in targets:
                    edges.append(Connection(
                        source_node=src_name,
                        source_output=out_idx,
                        source_type=port_type,
                        target_node=t.node,
                        target_input=t.index,
                        target_type=t.type,
                    ))
    return edges


def add_edge(index: ConnectionsMap, edge: Connection) -> None:
    """Insert one edge in place, padding empty output slots below its port."""
    slots = index.setdefault(edge.source_node, {}).setdefault(edge.source_type, [])
    while len(slots) <= edge.source_output:
        slots.append([])
    slots[edge.source_output].append(edge.endpoint())


def build(edges: Iterable[Connection]) -> ConnectionsMap:
    index: ConnectionsMap = {}
    for e in edges:
        add_edge(index, e)
    return index


def remove_edges(index: ConnectionsMap, from_name: str, to_name: str) -> bool:
    """
    Drop every endpoint under `from_name` that targets `to_name`.

    Emptied slots are left in place so the remaining endpoints keep their output
    numbers. Returns True if at least one endpoint was removed.
    """
    removed = False
    for slots in index.get(from_name, {}).values():
        for i, targets in enumerate(slots):
            kept = [t for t in targets if t.node != to_name]
            if len(kept) < len(targets):
                slots[i] = kept
                removed = True
    return removed


def drop_node(index: ConnectionsMap, name: str) -> None:
    """Remove the outgoing entry of `name` and every endpoint that targets it."""
    index.pop(name, None)
    for outputs in index.values():
        for slots in outputs.values():
            for i, targets in enumerate(slots):
                slots[i] = [t for t in targets if t.node != name]


def rename_node(index: ConnectionsMap, old_name: str, new_name: str) -> None:
    """Re-key the outgoing entry and rewrite every endpoint referencing `old_name`."""
    if old_name == new_name:
        return
    if old_name in index:
        moved = index[old_name]
        if new_name in index:
            # both names already had outgoing edges: merge slot by slot
            for port_type, slots in moved.items():
                dst = index[new_name].setdefault(port_type, [])
                while len(dst) < len(slots):
                    dst.append([])
                for i, targets in enumerate(slots):
                    dst[i].extend(targets)
            del index[old_name]
        else:
            # re-key in place so the encoded key order stays stable
            items = [(new_name if k == old_name else k, v) for k, v in index.items()]
            index.clear()
            index.update(items)

    for outputs in index.values():
        for slots in outputs.values():
            for targets in slots:
                for t in targets:
                    if t.node == old_name:
                        t.node = new_name


def decode_connections(raw: Any) -> ConnectionsMap:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise WorkflowDecodeError(f"connections must be an object, got {type(raw).__name__}")

    index: ConnectionsMap = {}
    for src_name, outputs in raw.items():
        if not isinstance(outputs, dict):
            raise WorkflowDecodeError(f"connections['{src_name}'] must be an object")
        index[src_name] = {}
        for port_type, slots in outputs.items():
            if not isinstance(slots, list):
                raise WorkflowDecodeError(f"connections['{src_name}']['{port_type}'] must be an array")
            # n8n writes null for unused outputs
            index[src_name][port_type] = [
                [ConnectionEndpoint.from_dict(t) for t in (targets or [])]
                for targets in slots
            ]
    return index


def encode_connections(index: ConnectionsMap) -> Dict[str, Any]:
    return {
        src_name: {
            port_type: [[t.to_dict() for t in targets] for targets in slots]
            for port_type, slots in outputs.items()
        }
        for src_name, outputs in index.items()
    }
