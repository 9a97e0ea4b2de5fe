"""uibench adapters - provider adapter abstraction layer.

Re-exports the BaseAdapter ABC, the request/result dataclasses,
the frame decoder, and the adapter registry functions.
"""

from uibench.adapters.base import (
    BaseAdapter,
    CompletionResult,
    OnDelta,
    RunRequest,
    TokenUsage,
)
from uibench.adapters.frames import BLANK_LINE, SINGLE_LINE, FrameDecoder, iter_sse_payloads
from uibench.adapters.registry import available_providers, get_adapter

__all__ = [
    "BLANK_LINE",
    "BaseAdapter",
    "CompletionResult",
    "FrameDecoder",
    "OnDelta",
    "RunRequest",
    "SINGLE_LINE",
    "TokenUsage",
    "available_providers",
    "get_adapter",
    "iter_sse_payloads",
]
