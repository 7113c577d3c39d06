"""Functional core - pure business logic with no I/O."""

from .errors import (
    ApplicationInProgressError,
    ItemNotFoundError,
    MissingWorkspaceError,
    PlanError,
    StoreError,
)
from .plan import (
    ApplicationResult,
    Grouping,
    Item,
    OrganizationPlan,
    Relocation,
    RelocationFailure,
    Workspace,
    normalize_name,
)
from .analysis import compile_organize_prompt, enrich_plan, parse_plan_response
from .report import format_plan, format_result

__all__ = [
    # Errors
    "ApplicationInProgressError",
    "ItemNotFoundError",
    "MissingWorkspaceError",
    "PlanError",
    "StoreError",
    # Plan
    "ApplicationResult",
    "Grouping",
    "Item",
    "OrganizationPlan",
    "Relocation",
    "RelocationFailure",
    "Workspace",
    "normalize_name",
    # Analysis
    "compile_organize_prompt",
    "enrich_plan",
    "parse_plan_response",
    # Report
    "format_plan",
    "format_result",
]
