"""
File: errors.py
Purpose: Error taxonomy for the workflow sync pipeline. Every failure is a WorkflowSyncError
    tagged with one ErrorKind and carrying the path, operation and underlying cause it relates to.
When Used: Raised by the GitHub integration, scanner, parser, dispatcher and renderer; caught per
    item by the service and once at the top of WorkflowSyncService.run().
Why Created: Lets the service decide fatal vs per-item handling from the kind alone and map the
    first fatal error to the run's terminal status.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    MALFORMED_DEFINITION = "malformed_definition"
    UNMATCHED_TEMPLATE_KIND = "unmatched_template_kind"
    TEMPLATE_ERROR = "template_error"
    TRANSPORT_ERROR = "transport_error"
    UNEXPECTED_ERROR = "unexpected_error"
    CONFIGURATION_ERROR = "configuration_error"
    DESTINATION_CONFLICT = "destination_conflict"


FATAL_KINDS = frozenset({
    ErrorKind.NOT_FOUND,
    ErrorKind.UNEXPECTED_ERROR,
    ErrorKind.CONFIGURATION_ERROR,
})


class WorkflowSyncError(Exception):
    """Base error; subclasses pin the kind"""
    kind: ErrorKind = ErrorKind.UNEXPECTED_ERROR

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.message = message
        self.path = path
        self.operation = operation
        self.cause = cause

    @property
    def fatal(self) -> bool:
        return self.kind in FATAL_KINDS

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.path:
            parts.append(f"path={self.path}")
        if self.cause is not None:
            parts.append(f"cause={type(self.cause).__name__}: {self.cause}")
        return " ".join(parts)


class NotFoundError(WorkflowSyncError):
    kind = ErrorKind.NOT_FOUND


class MalformedDefinitionError(WorkflowSyncError):
    kind = ErrorKind.MALFORMED_DEFINITION


class UnmatchedTemplateKindError(WorkflowSyncError):
    kind = ErrorKind.UNMATCHED_TEMPLATE_KIND

    def __init__(self, template_kind: str, path: Optional[str] = None):
        super().__init__(f"No template registered for kind '{template_kind}'", path=path, operation="dispatch")
        self.template_kind = template_kind


class TemplateError(WorkflowSyncError):
    kind = ErrorKind.TEMPLATE_ERROR


class TransportError(WorkflowSyncError):
    kind = ErrorKind.TRANSPORT_ERROR

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message, path=path, operation=operation, cause=cause)
        self.status_code = status_code


class UnexpectedError(WorkflowSyncError):
    kind = ErrorKind.UNEXPECTED_ERROR


class ConfigurationError(WorkflowSyncError):
    kind = ErrorKind.CONFIGURATION_ERROR


class DestinationConflictError(WorkflowSyncError):
    """Two or more definitions resolved to the same destination file"""
    kind = ErrorKind.DESTINATION_CONFLICT
