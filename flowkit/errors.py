# flowkit/errors.py
"""Exception hierarchy. Exit codes follow sysexits.h, as the CLI reports them."""

from __future__ import annotations

EX_OK = 0
EX_DATAERR = 65
EX_UNAVAILABLE = 69
EX_IOERR = 74


class FlowkitError(Exception):
    """Base for all flowkit errors."""
    exit_code = 1


class WorkflowDecodeError(FlowkitError, ValueError):
    """Wire document cannot be turned into typed workflow objects."""
    exit_code = EX_DATAERR


class WorkflowFileError(FlowkitError):
    """Workflow file could not be read or written."""
    exit_code = EX_IOERR


class NodeNotFoundError(FlowkitError, LookupError):
    exit_code = EX_UNAVAILABLE

    def __init__(self, node: str):
        self.node = node
        super().__init__(f"Node '{node}' not found in workflow")


class ConnectionNotFoundError(FlowkitError, LookupError):
    exit_code = EX_UNAVAILABLE

    def __init__(self, source: str, target: str):
        self.source = source
        self.target = target
        super().__init__(f"Connection not found: {source} -> {target}")


class ValidationFailedError(FlowkitError):
    exit_code = EX_DATAERR

    def __init__(self, report: str):
        self.report = report
        super().__init__(f"Validation failed:\n{report}")


class NoChangesError(FlowkitError):
    """A mutation left the workflow unchanged. Not a failure."""
    exit_code = EX_OK

    def __init__(self, message: str = "No changes detected"):
        super().__init__(message)
