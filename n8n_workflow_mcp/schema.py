"""Schema contract for tool inputs and decoded n8n API payloads."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from n8n_workflow_mcp.errors import FieldViolation, ToolValidationError

InputModelT = TypeVar("InputModelT", bound=BaseModel)


class Priority(StrEnum):
    """Supported patient task priorities."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ExecutionState(StrEnum):
    """Execution states surfaced to the host."""

    SUCCESS = "success"
    ERROR = "error"
    WAITING = "waiting"
    RUNNING = "running"
    UNKNOWN = "unknown"


_EXECUTION_STATES = frozenset(state.value for state in ExecutionState)


class _CamelModel(BaseModel):
    """Base for models whose wire names are camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class _ToolInput(BaseModel):
    """Base for tool arguments; only the published camelCase names are accepted."""

    model_config = ConfigDict(alias_generator=to_camel, frozen=True)


class TriggerWorkflowInput(_ToolInput):
    """Arguments for trigger_workflow."""

    workflow_name: str = Field(min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)


class ListWorkflowsInput(_ToolInput):
    """Arguments for list_workflows (none)."""


class GetWorkflowStatusInput(_ToolInput):
    """Arguments for get_workflow_status."""

    execution_id: str = Field(min_length=1)


class CreatePatientTaskInput(_ToolInput):
    """Arguments for create_patient_task."""

    workflow_name: str = Field(min_length=1)
    patient_id: str = Field(min_length=1)
    task_type: str = Field(min_length=1)
    priority: Priority = Priority.MEDIUM
    description: str | None = None
    due_date: str | None = None
    assigned_to: str | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("description", "due_date", "assigned_to", "metadata", mode="before")
    @classmethod
    def reject_explicit_null(cls, value: Any) -> Any:
        """Optional fields may be omitted but not sent as null."""
        if value is None:
            raise ValueError("must be omitted rather than null")
        return value


class WorkflowTag(_CamelModel):
    """Tag attached to a workflow."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str


class WorkflowSummary(_CamelModel):
    """Read-only projection of one remote workflow."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str
    active: bool
    created_at: str
    updated_at: str
    tags: list[WorkflowTag] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def default_missing_tags(cls, value: Any) -> Any:
        """Treat a null tag list as empty."""
        return [] if value is None else value


class ExecutionStatus(_CamelModel):
    """Read-only projection of one workflow execution."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    workflow_id: str
    finished: bool
    status: ExecutionState = ExecutionState.UNKNOWN
    started_at: str
    stopped_at: str | None = None
    mode: str

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: Any) -> Any:
        """Fold absent or unrecognized states into unknown."""
        if not isinstance(value, str) or value not in _EXECUTION_STATES:
            return ExecutionState.UNKNOWN
        return value


class WorkflowListEnvelope(BaseModel):
    """Response body of GET /workflows."""

    data: list[WorkflowSummary]


class ExecutionEnvelope(BaseModel):
    """Response body of GET /executions/{id}."""

    data: ExecutionStatus


def _location(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as a dotted field path."""
    return ".".join(str(part) for part in loc) or "arguments"


def violations_from_error(error: ValidationError) -> tuple[FieldViolation, ...]:
    """Convert a pydantic ValidationError into field-level violations."""
    return tuple(
        FieldViolation(field=_location(detail["loc"]), reason=detail["msg"])
        for detail in error.errors()
    )


def validate_tool_arguments(
    model: type[InputModelT], raw_arguments: Any
) -> InputModelT:
    """Validate raw tool arguments against one input model.

    ``None`` is accepted as an empty argument mapping. Anything that is not a
    mapping, or that fails field checks, raises ToolValidationError.
    """
    arguments = {} if raw_arguments is None else raw_arguments
    try:
        return model.model_validate(arguments)
    except ValidationError as error:
        raise ToolValidationError(violations_from_error(error)) from error
