# flowkit/models/node.py

from __future__ import annotations

import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from flowkit.errors import WorkflowDecodeError


# Keys handled by Node itself; everything else lands in Node.extra
NODE_KEYS = (
    "id", "name", "type", "typeVersion", "position", "parameters",
    "credentials", "disabled", "notes", "continueOnFail", "retryOnFail",
    "maxTries", "waitBetweenTries", "alwaysOutputData", "executeOnce",
    "webhookId",
)

# Types that start a workflow without "trigger" in the name
START_TYPES = ("n8n-nodes-base.start", "n8n-nodes-base.manualTrigger")


def is_trigger(node_type: str) -> bool:
    """
    Heuristic trigger detection on the free-text node type.

    A type counts as a trigger if it contains "trigger" (any case) or is one of
    the dedicated start types. Community nodes that start a workflow without
    following this naming are not detected.
    """
    t = str(node_type or "")
    return "trigger" in t.lower() or t in START_TYPES


def generate_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Position:
    """Canvas coordinate. Serialized as [x, y]."""
    x: int = 0
    y: int = 0

    @classmethod
    def from_wire(cls, value: Any) -> "Position":
        if value is None:
            return cls()
        if isinstance(value, (list, tuple)) and len(value) == 2:
            x, y = value
        elif isinstance(value, dict) and "x" in value and "y" in value:
            x, y = value["x"], value["y"]
        else:
            raise WorkflowDecodeError(f"position must be a [x, y] array, got {value!r}")
        return cls(_coord(x), _coord(y))

    def to_wire(self) -> list:
        return [self.x, self.y]

    def as_tuple(self):
        return (self.x, self.y)

    def __str__(self) -> str:
        return f"({self.x},{self.y})"


def _coord(v: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise WorkflowDecodeError(f"position coordinate must be a number, got {v!r}")
    if isinstance(v, float) and not v.is_integer():
        raise WorkflowDecodeError(f"position coordinate must be an integer, got {v!r}")
    return int(v)


@dataclass
class Node:
    """One workflow node. Unknown wire keys are kept in `extra` in original order."""
    id: str
    name: str
    type: str
    type_version: float = 1
    position: Position = field(default_factory=Position)
    parameters: Any = field(default_factory=dict)
    credentials: Optional[Any] = None
    disabled: bool = False
    notes: Optional[str] = None
    continue_on_fail: bool = False
    retry_on_fail: bool = False
    max_tries: Optional[int] = None
    wait_between_tries: Optional[int] = None
    always_output_data: bool = False
    execute_once: bool = False
    webhook_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=OrderedDict)

    @property
    def is_trigger(self) -> bool:
        return is_trigger(self.type)

    @classmethod
    def create(cls, name: str, node_type: str, **kwargs) -> "Node":
        """New node with a generated id."""
        return cls(id=generate_id(), name=name, type=node_type, **kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        if not isinstance(data, dict):
            raise WorkflowDecodeError(f"node must be an object, got {type(data).__name__}")
        for key in ("id", "name", "type"):
            if key not in data:
                raise WorkflowDecodeError(f"node is missing required field '{key}'")
        if not isinstance(data["id"], str):
            raise WorkflowDecodeError(f"node id must be a string, got {data['id']!r}")

        params = data.get("parameters")
        return cls(
            id=data["id"],
            name=data["name"],
            type=data["type"],
            type_version=data.get("typeVersion", 1),
            position=Position.from_wire(data.get("position")),
            parameters={} if params is None else params,
            credentials=data.get("credentials"),
            disabled=bool(data.get("disabled", False)),
            notes=data.get("notes"),
            continue_on_fail=bool(data.get("continueOnFail", False)),
            retry_on_fail=bool(data.get("retryOnFail", False)),
            max_tries=data.get("maxTries"),
            wait_between_tries=data.get("waitBetweenTries"),
            always_output_data=bool(data.get("alwaysOutputData", False)),
            execute_once=bool(data.get("executeOnce", False)),
            webhook_id=data.get("webhookId"),
            extra=OrderedDict((k, v) for k, v in data.items() if k not in NODE_KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "typeVersion": self.type_version,
            "position": self.position.to_wire(),
            "parameters": self.parameters,
        }
        if self.credentials is not None:
            out["credentials"] = self.credentials
        out["disabled"] = self.disabled
        if self.notes is not None:
            out["notes"] = self.notes
        out["continueOnFail"] = self.continue_on_fail
        out["retryOnFail"] = self.retry_on_fail
        if self.max_tries is not None:
            out["maxTries"] = self.max_tries
        if self.wait_between_tries is not None:
            out["waitBetweenTries"] = self.wait_between_tries
        out["alwaysOutputData"] = self.always_output_data
        out["executeOnce"] = self.execute_once
        if self.webhook_id is not None:
            out["webhookId"] = self.webhook_id

        for k, v in self.extra.items():
            out.setdefault(k, v)
        return out
