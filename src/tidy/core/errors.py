"""Error taxonomy for plan application."""


class PlanError(Exception):
    """Raised when a plan is missing or structurally invalid."""

    pass


class MissingWorkspaceError(PlanError):
    """Raised when the workspace identity needed to create groupings is absent."""

    pass


class ApplicationInProgressError(Exception):
    """Raised when apply() is called while another plan is being applied."""

    pass


class StoreError(Exception):
    """A remote store call failed. `reason` is short and machine-readable."""

    def __init__(self, reason: str, message: str | None = None):
        super().__init__(message or reason)
        self.reason = reason


class ItemNotFoundError(StoreError):
    """The item store has no item with the given id."""

    def __init__(self, item_id: str):
        super().__init__("not-found", f"Item not found: {item_id}")
        self.item_id = item_id
