"""Z.AI (GLM) adapter, using the coding plan endpoint."""

from __future__ import annotations

from typing import Any

from uibench.adapters.base import RunRequest
from uibench.adapters.http_adapter import HTTPAdapter, model_id_from


class ZaiAdapter(HTTPAdapter):
    """Adapter for the Z.AI chat completions API."""

    provider = "zai"
    endpoint = "https://api.z.ai/api/coding/paas/v4/chat/completions"
    models_endpoint = "https://api.z.ai/api/coding/paas/v4/models"
    strict_model_listing = False

    def build_payload(self, request: RunRequest, stream: bool) -> dict[str, Any]:
        payload = super().build_payload(request, stream)
        payload["stream"] = stream
        return payload

    def parse_model_ids(self, data: Any) -> list[str]:
        if not isinstance(data, dict):
            return []
        raw = data.get("data") or data.get("models") or []
        if not isinstance(raw, list):
            return []
        ids = (model_id_from(item, "id", "name", "model_id") for item in raw)
        return [model_id for model_id in ids if model_id]
