"""Grouping store interface."""

from typing import Protocol

from tidy.core.plan import Grouping, Workspace


class GroupingStore(Protocol):
    """Interface for reading and creating groupings (lists).

    Failed calls raise StoreError.
    """

    def list_groupings(self, workspace: Workspace) -> list[Grouping]:
        """List all groupings visible to the workspace."""
        ...

    def create_grouping(self, name: str, metadata: dict) -> Grouping:
        """Create a grouping and return it with its new id."""
        ...
