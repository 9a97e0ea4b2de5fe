"""OpenRouter adapter.

OpenRouter fronts many upstream models behind an OpenAI-compatible API
and reports usage in the final stream frame.
"""

from __future__ import annotations

from uibench.adapters.http_adapter import HTTPAdapter


class OpenRouterAdapter(HTTPAdapter):
    """Adapter for the OpenRouter chat completions API."""

    provider = "openrouter"
    endpoint = "https://openrouter.ai/api/v1/chat/completions"
    models_endpoint = "https://openrouter.ai/api/v1/models"
