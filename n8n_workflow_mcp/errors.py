"""Error vocabulary shared by the adapter, transport and server."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND


class ErrorKind(StrEnum):
    """Closed set of failure kinds reported to the calling host."""

    VALIDATION = "validation"
    UPSTREAM_API = "upstream_api"
    UNKNOWN_TOOL = "unknown_tool"
    INTERNAL = "internal"


class ConfigurationError(RuntimeError):
    """Raised when process configuration is missing or invalid."""


@dataclass(frozen=True, slots=True)
class FieldViolation:
    """One field-level validation failure."""

    field: str
    reason: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "reason": self.reason}


class ToolValidationError(ValueError):
    """Raised when tool arguments fail schema checks."""

    def __init__(self, violations: tuple[FieldViolation, ...]) -> None:
        self.violations = violations
        super().__init__(
            "; ".join(f"{violation.field}: {violation.reason}" for violation in violations)
        )


class N8nApiError(RuntimeError):
    """Raised when the n8n API or a webhook call fails."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    def with_prefix(self, prefix: str) -> N8nApiError:
        """Return a copy whose message is prefixed with the failing operation."""
        return N8nApiError(
            f"{prefix}: {self}",
            status_code=self.status_code,
            response_body=self.response_body,
        )


class WorkflowNotFoundError(N8nApiError):
    """Raised when no remote workflow matches a requested name."""

    def __init__(self, workflow_name: str) -> None:
        super().__init__(f'Workflow "{workflow_name}" not found', status_code=404)
        self.workflow_name = workflow_name


class UnknownToolError(LookupError):
    """Raised when a tool name is outside the registry."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


@dataclass(frozen=True, slots=True)
class ProtocolError:
    """Normalized failure returned to the host in place of a tool response."""

    kind: ErrorKind
    code: int
    message: str
    data: dict[str, Any] | None = None

    @classmethod
    def from_validation_error(cls, error: ToolValidationError) -> ProtocolError:
        return cls(
            kind=ErrorKind.VALIDATION,
            code=INVALID_PARAMS,
            message=f"Validation Error: {error}",
            data={"violations": [violation.as_dict() for violation in error.violations]},
        )

    @classmethod
    def from_api_error(cls, error: N8nApiError) -> ProtocolError:
        if error.status_code is None:
            message = f"n8n API Error: {error}"
        else:
            message = f"n8n API Error ({error.status_code}): {error}"
        return cls(
            kind=ErrorKind.UPSTREAM_API,
            code=INTERNAL_ERROR,
            message=message,
            data={"statusCode": error.status_code, "response": error.response_body},
        )

    @classmethod
    def from_unknown_tool(cls, error: UnknownToolError) -> ProtocolError:
        return cls(kind=ErrorKind.UNKNOWN_TOOL, code=METHOD_NOT_FOUND, message=str(error))

    @classmethod
    def from_unexpected(cls, error: BaseException) -> ProtocolError:
        return cls(
            kind=ErrorKind.INTERNAL,
            code=INTERNAL_ERROR,
            message=f"Unexpected error: {error}",
        )
