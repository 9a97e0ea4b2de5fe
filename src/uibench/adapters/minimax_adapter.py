"""MiniMax adapter (chat completion v2).

MiniMax frames its stream one event per line rather than with blank-line
separators, and expects a ``name`` on every message.
"""

from __future__ import annotations

from typing import Any

from uibench.adapters.base import RunRequest
from uibench.adapters.frames import SINGLE_LINE
from uibench.adapters.http_adapter import HTTPAdapter, model_id_from


class MinimaxAdapter(HTTPAdapter):
    """Adapter for the MiniMax chat completion v2 API."""

    provider = "minimax"
    endpoint = "https://api.minimax.io/v1/text/chatcompletion_v2"
    models_endpoint = "https://api.minimax.io/v1/models"
    frame_separator = SINGLE_LINE
    strict_model_listing = False

    def build_messages(self, request: RunRequest) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if request.system_prompt:
            messages.append(
                {"role": "system", "name": "system", "content": request.system_prompt}
            )
        messages.append({"role": "user", "name": "user", "content": request.prompt})
        return messages

    def build_payload(self, request: RunRequest, stream: bool) -> dict[str, Any]:
        payload = super().build_payload(request, stream)
        payload["stream"] = stream
        return payload

    def parse_model_ids(self, data: Any) -> list[str]:
        if not isinstance(data, dict):
            return []
        nested = data.get("data")
        if isinstance(nested, dict):
            nested = nested.get("models")
        raw = nested or data.get("models") or []
        if not isinstance(raw, list):
            return []
        ids = (model_id_from(item, "id", "model", "name") for item in raw)
        return [model_id for model_id in ids if model_id]
