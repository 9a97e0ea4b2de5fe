"""Error taxonomy shared by adapters, the runner, and the run store.

Caller errors (unknown provider, missing key) are distinct from upstream
failures, which carry the provider's status and verbatim body so the
benchmark operator sees exactly what the API returned. Nothing here is
retried automatically.
"""

from __future__ import annotations


class UIBenchError(Exception):
    """Base class for all uibench errors."""


class UnsupportedProviderError(UIBenchError, ValueError):
    """Raised when a provider identifier does not resolve to an adapter.

    Attributes:
        provider: The identifier that failed to resolve.
        available: Builtin provider identifiers.
    """

    def __init__(self, provider: str, available: list[str]) -> None:
        self.provider = provider
        self.available = available
        super().__init__(
            f"Unsupported provider '{provider}'. "
            f"Available providers: {', '.join(available)}."
        )


class MissingCredentialError(UIBenchError):
    """Raised when no API key can be resolved for a provider."""

    def __init__(self, provider: str, env_var: str | None = None) -> None:
        self.provider = provider
        self.env_var = env_var
        hint = f" Set {env_var} or pass a key explicitly." if env_var else ""
        super().__init__(f"Missing API key for provider '{provider}'.{hint}")


class UpstreamError(UIBenchError):
    """Non-2xx response from a provider endpoint.

    Attributes:
        status: HTTP status code returned by the provider.
        body: Verbatim response body text.
        provider: Provider identifier, when known.
    """

    def __init__(self, status: int, body: str, provider: str | None = None) -> None:
        self.status = status
        self.body = body
        self.provider = provider
        label = provider or "upstream"
        super().__init__(f"{label} error {status}: {body}")


class DecodeError(UIBenchError):
    """Raised when a byte stream cannot be decoded into frames."""


class NotFoundError(UIBenchError, LookupError):
    """Raised by require-style lookups for an unknown run identifier."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Run '{run_id}' not found")


class StorageError(UIBenchError):
    """Filesystem failure while creating, scoring, or deleting a run."""
