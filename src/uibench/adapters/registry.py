"""Adapter registry for resolving provider identifiers to adapter classes.

Supports both builtin provider names (e.g., "openai", "minimax")
and custom dotted-path imports (e.g., "my.module.MyAdapter").
"""

from __future__ import annotations

import importlib
from typing import Any

from uibench.adapters.base import BaseAdapter
from uibench.errors import UnsupportedProviderError

# Mapping of builtin provider ids to their fully-qualified class paths.
# Adapters are lazily imported so an SDK is only needed when routed through it.
BUILTIN_ADAPTERS: dict[str, str] = {
    "openai": "uibench.adapters.openai_adapter.OpenAIAdapter",
    "anthropic": "uibench.adapters.anthropic_adapter.AnthropicAdapter",
    "openrouter": "uibench.adapters.openrouter_adapter.OpenRouterAdapter",
    "zai": "uibench.adapters.zai_adapter.ZaiAdapter",
    "minimax": "uibench.adapters.minimax_adapter.MinimaxAdapter",
}

# Providers that can delegate to an official SDK via use_sdk=True.
SDK_CAPABLE: frozenset[str] = frozenset({"openai", "anthropic"})


def available_providers() -> list[str]:
    """Return the builtin provider identifiers, sorted."""
    return sorted(BUILTIN_ADAPTERS)


def resolve_adapter_class(name: str) -> type[BaseAdapter]:
    """Resolve a provider id or dotted path to a BaseAdapter subclass.

    Raises:
        UnsupportedProviderError: If the name is not a builtin and has no dots.
        ImportError: If the module or attribute cannot be imported.
        TypeError: If the resolved object is not a BaseAdapter subclass.
    """
    if name in BUILTIN_ADAPTERS:
        dotted_path = BUILTIN_ADAPTERS[name]
    elif "." in name:
        dotted_path = name
    else:
        raise UnsupportedProviderError(name, available_providers())

    module_path, _, class_name = dotted_path.rpartition(".")
    if not module_path or not class_name:
        raise UnsupportedProviderError(name, available_providers())

    module = importlib.import_module(module_path)

    try:
        cls = getattr(module, class_name)
    except AttributeError:
        raise ImportError(
            f"Module '{module_path}' has no attribute '{class_name}'."
        ) from None

    if not isinstance(cls, type) or not issubclass(cls, BaseAdapter):
        raise TypeError(
            f"'{dotted_path}' is not a subclass of BaseAdapter. "
            f"Custom adapters must inherit from uibench.adapters.base.BaseAdapter."
        )
    return cls


def get_adapter(name: str, api_key: str, **options: Any) -> BaseAdapter:
    """Resolve a provider by name or dotted path and return an instance.

    Args:
        name: A builtin provider id or a fully-qualified dotted path
              to an adapter class.
        api_key: Resolved credential for the provider.
        **options: Passed through to the adapter constructor
            (e.g., ``timeout``, ``client``, ``use_sdk``).

    Returns:
        An instance of the resolved adapter class.

    Raises:
        UnsupportedProviderError: If the provider id is unknown.
        MissingCredentialError: If api_key is empty.
    """
    cls = resolve_adapter_class(name)
    if name in BUILTIN_ADAPTERS and name not in SDK_CAPABLE:
        options.pop("use_sdk", None)
    return cls(api_key, **options)
