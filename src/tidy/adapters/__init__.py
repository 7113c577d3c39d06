"""Adapters - implementations of ports for specific backends."""

from .claude_cli import ClaudeCLIService
from .rest_backend import RestBackendAdapter

__all__ = [
    "ClaudeCLIService",
    "RestBackendAdapter",
]
