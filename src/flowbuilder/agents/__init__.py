"""FlowBuilder completion agents module."""

from .completion import CompletionClient, CompletionError, CompletionResult, OpenRouterClient

__all__ = ["CompletionClient", "CompletionError", "CompletionResult", "OpenRouterClient"]
