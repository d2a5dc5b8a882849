"""n8n REST API and webhook wrapper."""

from __future__ import annotations

import json
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from n8n_workflow_mcp.config import ServerConfig
from n8n_workflow_mcp.errors import N8nApiError, WorkflowNotFoundError
from n8n_workflow_mcp.schema import (
    ExecutionEnvelope,
    ExecutionStatus,
    WorkflowListEnvelope,
    WorkflowSummary,
)

API_KEY_HEADER = "X-N8N-API-KEY"
WEBHOOK_SECRET_HEADER = "X-Webhook-Secret"

EnvelopeT = TypeVar("EnvelopeT", bound=BaseModel)


def _response_body(response: httpx.Response) -> Any:
    """Return the decoded JSON body, or raw text when it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text


def _describe_transport_error(error: httpx.HTTPError) -> str:
    """Render a transport failure as a short message."""
    if isinstance(error, httpx.TimeoutException):
        return f"request timed out ({error})" if str(error) else "request timed out"
    return str(error) or type(error).__name__


async def _send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any,
) -> httpx.Response:
    """Send one request and raise N8nApiError for any failure."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as error:
        raise N8nApiError(_describe_transport_error(error)) from error

    if not response.is_success:
        raise N8nApiError(
            f"Request failed with status code {response.status_code}",
            status_code=response.status_code,
            response_body=_response_body(response),
        )
    return response


def _decode(response: httpx.Response, model: type[EnvelopeT], *, endpoint: str) -> EnvelopeT:
    """Decode a management API response into its expected envelope."""
    try:
        body = response.json()
    except ValueError as error:
        raise N8nApiError(
            f"Expected JSON body from {endpoint}.",
            response_body=response.text,
        ) from error

    try:
        return model.model_validate(body)
    except ValidationError as error:
        first = error.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise N8nApiError(
            f"Unexpected response shape from {endpoint} at '{location}': {first['msg']}",
            response_body=body,
        ) from error


async def fetch_workflows_by_name(
    *, client: httpx.AsyncClient, workflow_name: str
) -> tuple[WorkflowSummary, ...]:
    """Fetch workflows whose name matches, in remote order."""
    endpoint = "/workflows"
    response = await _send(
        client,
        "GET",
        endpoint,
        params={"filter": json.dumps({"name": workflow_name})},
    )
    return tuple(_decode(response, WorkflowListEnvelope, endpoint=endpoint).data)


async def fetch_active_workflows(*, client: httpx.AsyncClient) -> tuple[WorkflowSummary, ...]:
    """Fetch all active workflows, in remote order."""
    endpoint = "/workflows"
    response = await _send(client, "GET", endpoint, params={"active": "true"})
    return tuple(_decode(response, WorkflowListEnvelope, endpoint=endpoint).data)


async def fetch_execution(*, client: httpx.AsyncClient, execution_id: str) -> ExecutionStatus:
    """Fetch one execution record by id."""
    endpoint = f"/executions/{quote(execution_id, safe='')}"
    response = await _send(client, "GET", endpoint)
    return _decode(response, ExecutionEnvelope, endpoint=endpoint).data


async def resolve_workflow(*, client: httpx.AsyncClient, workflow_name: str) -> WorkflowSummary:
    """Resolve a workflow name to its first matching workflow."""
    workflows = await fetch_workflows_by_name(client=client, workflow_name=workflow_name)
    if not workflows:
        raise WorkflowNotFoundError(workflow_name)
    return workflows[0]


def build_webhook_url(base_url: str, workflow_id: str) -> str:
    """Join the instance base URL with the workflow's webhook path."""
    return f"{base_url.rstrip('/')}/webhook/{quote(workflow_id, safe='')}"


async def trigger_webhook(
    *,
    client: httpx.AsyncClient,
    config: ServerConfig,
    workflow_id: str,
    payload: dict[str, Any],
) -> Any:
    """POST a JSON payload to a workflow webhook and return the opaque body."""
    headers: dict[str, str] = {}
    if config.webhook_secret:
        headers[WEBHOOK_SECRET_HEADER] = config.webhook_secret
    response = await _send(
        client,
        "POST",
        build_webhook_url(config.base_url, workflow_id),
        json=payload,
        headers=headers,
        timeout=config.timeout_seconds,
    )
    return _response_body(response)


def build_api_client(
    config: ServerConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build an authenticated client for the n8n management API."""
    headers = {
        API_KEY_HEADER: config.api_key,
        "Content-Type": "application/json",
    }
    return httpx.AsyncClient(
        base_url=config.base_url,
        headers=headers,
        timeout=config.timeout_seconds,
        transport=transport,
    )


def build_webhook_client(
    config: ServerConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build an unauthenticated client for webhook posts that follows redirects."""
    return httpx.AsyncClient(
        timeout=config.timeout_seconds,
        follow_redirects=True,
        transport=transport,
    )
