"""uibench - streaming benchmark runner for LLM-generated HTML."""

__version__ = "0.1.0"
