"""Rendering of tool responses for the MCP text channel."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ToolResponse:
    """Successful tool outcome; ``payload`` always carries ``success: true``."""

    payload: dict[str, Any]

    @property
    def success(self) -> bool:
        return bool(self.payload.get("success"))

    @property
    def text(self) -> str:
        return render_payload(self.payload)


def render_payload(payload: dict[str, Any]) -> str:
    """Serialize a payload as pretty-printed JSON with 2-space indentation."""
    return json.dumps(payload, indent=2, ensure_ascii=False)


def success_payload(**fields: Any) -> dict[str, Any]:
    """Build a success envelope with ``success`` as the first key."""
    return {"success": True, **fields}
