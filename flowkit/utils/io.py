# flowkit/utils/io.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Union

import yaml

from flowkit.errors import WorkflowDecodeError, WorkflowFileError
from flowkit.models.workflow import Workflow
from flowkit.utils.logger import get_logger

logger = get_logger("io")

PathLike = Union[str, Path]

YAML_SUFFIXES = (".yaml", ".yml")


def to_path(p: PathLike) -> Path:
    """Convert string-like to pathlib.Path."""
    return p if isinstance(p, Path) else Path(p)


def ensure_parent(path: PathLike) -> Path:
    """Ensure parent directory exists for a file path."""
    p = to_path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    return p


def write_text(path: PathLike, text: str, encoding: str = "utf-8") -> Path:
    """Write text atomically (via temp file then replace)."""
    p = ensure_parent(path)
    tmp = p.with_suffix(p.suffix + ".tmp")
    tmp.write_text(text, encoding=encoding)
    tmp.replace(p)
    return p


def load_document(path: PathLike) -> Any:
    """
    Load a raw workflow document by extension:
      - .yaml/.yml -> YAML
      - anything else -> JSON
    """
    p = to_path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise WorkflowFileError(f"Failed to read file '{p}': {e}") from e

    try:
        if p.suffix.lower() in YAML_SUFFIXES:
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise WorkflowDecodeError(f"Failed to parse '{p}': {e}") from e


def dump_document(data: Any, path: PathLike) -> str:
    if to_path(path).suffix.lower() in YAML_SUFFIXES:
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    return json.dumps(data, ensure_ascii=False, indent=2) + "\n"


def read_workflow(path: PathLike) -> Workflow:
    wf = Workflow.from_dict(load_document(path))
    logger.debug("loaded workflow '%s' from %s (%d nodes)", wf.name, path, len(wf.nodes))
    return wf


def write_workflow(workflow: Workflow, path: PathLike) -> Path:
    """Encode and write a workflow; format follows the file extension."""
    try:
        p = write_text(path, dump_document(workflow.to_dict(), path))
    except OSError as e:
        raise WorkflowFileError(f"Failed to write file '{path}': {e}") from e
    logger.debug("wrote workflow '%s' to %s", workflow.name, p)
    return p
