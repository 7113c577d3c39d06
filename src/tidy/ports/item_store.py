"""Item store interface."""

from typing import Protocol

from tidy.core.plan import Item, Workspace


class ItemStore(Protocol):
    """Interface for reading items and changing their grouping.

    Failed calls raise StoreError (ItemNotFoundError for unknown ids).
    """

    def update_item_grouping(self, item_id: str, grouping_id: str) -> None:
        """Set an item's grouping. Writing the current value again succeeds."""
        ...

    def list_open_items(self, workspace: Workspace, grouping_id: str | None = None) -> list[Item]:
        """List uncompleted items, optionally limited to one grouping."""
        ...
