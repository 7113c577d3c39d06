"""Ports - interfaces/protocols for external dependencies."""

from .grouping_store import GroupingStore
from .item_store import ItemStore
from .llm_service import LLMService

__all__ = [
    "GroupingStore",
    "ItemStore",
    "LLMService",
]
