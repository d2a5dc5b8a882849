"""Tool registry, tool descriptors and the n8n tool adapter."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx
from mcp.types import Tool
from pydantic import BaseModel

from n8n_workflow_mcp.config import ServerConfig
from n8n_workflow_mcp.errors import (
    N8nApiError,
    ProtocolError,
    ToolValidationError,
    UnknownToolError,
    WorkflowNotFoundError,
)
from n8n_workflow_mcp.n8n_client import (
    build_api_client,
    build_webhook_client,
    fetch_active_workflows,
    fetch_execution,
    resolve_workflow,
    trigger_webhook,
)
from n8n_workflow_mcp.observability import ToolCallTelemetry
from n8n_workflow_mcp.output import ToolResponse, success_payload
from n8n_workflow_mcp.schema import (
    CreatePatientTaskInput,
    GetWorkflowStatusInput,
    ListWorkflowsInput,
    TriggerWorkflowInput,
    validate_tool_arguments,
)

logger = logging.getLogger(__name__)

TOOL_DEFINITIONS: tuple[Tool, ...] = (
    Tool(
        name="trigger_workflow",
        description=(
            "Triggers an n8n webhook workflow by name and passes a JSON payload. "
            "Returns execution ID or response data."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "workflowName": {
                    "type": "string",
                    "description": "Name of the n8n workflow to trigger",
                },
                "payload": {
                    "type": "object",
                    "description": "JSON payload to send to the workflow webhook",
                    "default": {},
                },
            },
            "required": ["workflowName"],
        },
    ),
    Tool(
        name="list_workflows",
        description=(
            "Lists all active workflows from n8n REST API. "
            "Returns workflow IDs, names, and metadata."
        ),
        inputSchema={
            "type": "object",
            "properties": {},
        },
    ),
    Tool(
        name="get_workflow_status",
        description=(
            "Checks execution status of a workflow run by execution ID. "
            "Returns status, timestamps, and result data."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "executionId": {
                    "type": "string",
                    "description": "The execution ID returned from trigger_workflow",
                },
            },
            "required": ["executionId"],
        },
    ),
    Tool(
        name="create_patient_task",
        description=(
            "Sends a structured patient task payload to a specified n8n workflow. "
            "Designed for healthcare workflows."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "workflowName": {
                    "type": "string",
                    "description": "Name of the n8n workflow to receive the task",
                },
                "patientId": {
                    "type": "string",
                    "description": "Unique identifier for the patient",
                },
                "taskType": {
                    "type": "string",
                    "description": 'Type of task (e.g., "appointment", "medication", "followup")',
                },
                "priority": {
                    "type": "string",
                    "enum": ["low", "medium", "high", "urgent"],
                    "description": "Task priority level",
                    "default": "medium",
                },
                "description": {
                    "type": "string",
                    "description": "Detailed description of the task",
                },
                "dueDate": {
                    "type": "string",
                    "description": "Due date in ISO 8601 format (YYYY-MM-DD)",
                },
                "assignedTo": {
                    "type": "string",
                    "description": "User or team assigned to the task",
                },
                "metadata": {
                    "type": "object",
                    "description": "Additional metadata for the task",
                },
            },
            "required": ["workflowName", "patientId", "taskType"],
        },
    ),
)


def utc_timestamp() -> str:
    """Return the current UTC time as ISO 8601 with milliseconds and a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@contextmanager
def _upstream_failure(prefix: str) -> Iterator[None]:
    """Prefix transport failures with the operation that raised them."""
    try:
        yield
    except WorkflowNotFoundError:
        raise
    except N8nApiError as error:
        raise error.with_prefix(prefix) from error


@dataclass(frozen=True, slots=True)
class _ToolSpec:
    input_model: type[BaseModel]
    handler: Callable[[Any], Awaitable[dict[str, Any]]]


class ToolAdapter:
    """Dispatch tool calls to n8n and normalize every outcome."""

    def __init__(
        self,
        config: ServerConfig,
        *,
        api_client: httpx.AsyncClient,
        webhook_client: httpx.AsyncClient,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self._config = config
        self._api_client = api_client
        self._webhook_client = webhook_client
        self._clock = clock
        self._tools: Mapping[str, _ToolSpec] = {
            "trigger_workflow": _ToolSpec(TriggerWorkflowInput, self._trigger_workflow),
            "list_workflows": _ToolSpec(ListWorkflowsInput, self._list_workflows),
            "get_workflow_status": _ToolSpec(GetWorkflowStatusInput, self._get_workflow_status),
            "create_patient_task": _ToolSpec(CreatePatientTaskInput, self._create_patient_task),
        }

    @classmethod
    def from_config(
        cls,
        config: ServerConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ToolAdapter:
        """Build an adapter that owns its HTTP clients."""
        return cls(
            config,
            api_client=build_api_client(config, transport=transport),
            webhook_client=build_webhook_client(config, transport=transport),
        )

    async def aclose(self) -> None:
        await self._api_client.aclose()
        await self._webhook_client.aclose()

    async def __aenter__(self) -> ToolAdapter:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        await self.aclose()

    async def invoke(self, tool_name: str, raw_arguments: Any) -> ToolResponse | ProtocolError:
        """Run one tool call and return its response or its protocol error."""
        started = time.perf_counter()
        outcome: ToolResponse | ProtocolError
        try:
            spec = self._tools.get(tool_name)
            if spec is None:
                raise UnknownToolError(tool_name)
            arguments = validate_tool_arguments(spec.input_model, raw_arguments)
            outcome = ToolResponse(payload=await spec.handler(arguments))
        except UnknownToolError as error:
            outcome = ProtocolError.from_unknown_tool(error)
        except ToolValidationError as error:
            outcome = ProtocolError.from_validation_error(error)
        except N8nApiError as error:
            logger.warning("Tool %s failed upstream: %s", tool_name, error)
            outcome = ProtocolError.from_api_error(error)
        except Exception as error:
            logger.exception("Tool execution error: %s", tool_name)
            outcome = ProtocolError.from_unexpected(error)

        failed = isinstance(outcome, ProtocolError)
        ToolCallTelemetry(
            tool_name=tool_name,
            outcome=outcome.kind if failed else "ok",
            latency_seconds=time.perf_counter() - started,
            error_code=outcome.code if failed else None,
        ).log(logger)
        return outcome

    async def _trigger_workflow(self, arguments: TriggerWorkflowInput) -> dict[str, Any]:
        with _upstream_failure("Failed to trigger workflow"):
            workflow = await resolve_workflow(
                client=self._api_client, workflow_name=arguments.workflow_name
            )
            response_body = await trigger_webhook(
                client=self._webhook_client,
                config=self._config,
                workflow_id=workflow.id,
                payload=arguments.payload,
            )
        return success_payload(
            workflowId=workflow.id,
            workflowName=workflow.name,
            response=response_body,
        )

    async def _list_workflows(self, arguments: ListWorkflowsInput) -> dict[str, Any]:
        with _upstream_failure("Failed to list workflows"):
            workflows = await fetch_active_workflows(client=self._api_client)
        return success_payload(
            count=len(workflows),
            workflows=[workflow.model_dump(mode="json", by_alias=True) for workflow in workflows],
        )

    async def _get_workflow_status(self, arguments: GetWorkflowStatusInput) -> dict[str, Any]:
        with _upstream_failure("Failed to get workflow status"):
            execution = await fetch_execution(
                client=self._api_client, execution_id=arguments.execution_id
            )
        return success_payload(execution=execution.model_dump(mode="json", by_alias=True))

    async def _create_patient_task(self, arguments: CreatePatientTaskInput) -> dict[str, Any]:
        with _upstream_failure("Failed to create patient task"):
            workflow = await resolve_workflow(
                client=self._api_client, workflow_name=arguments.workflow_name
            )
            task = build_task_payload(arguments, created_at=self._clock())
            response_body = await trigger_webhook(
                client=self._webhook_client,
                config=self._config,
                workflow_id=workflow.id,
                payload=task,
            )
        return success_payload(
            workflowId=workflow.id,
            workflowName=workflow.name,
            task=task,
            response=response_body,
        )


def build_task_payload(arguments: CreatePatientTaskInput, *, created_at: str) -> dict[str, Any]:
    """Build the webhook body for a patient task; unset optional fields are omitted."""
    fields: dict[str, Any] = {
        "patientId": arguments.patient_id,
        "taskType": arguments.task_type,
        "priority": arguments.priority.value,
        "description": arguments.description,
        "dueDate": arguments.due_date,
        "assignedTo": arguments.assigned_to,
        "metadata": arguments.metadata,
    }
    task = {key: value for key, value in fields.items() if value is not None}
    task["createdAt"] = created_at
    return task
