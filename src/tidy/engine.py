"""Organization plan application engine.

Applies an analyzed plan against injected stores: creates the missing
groupings one by one, resolves each relocation to a grouping id, moves the
items and reports what happened. Per-grouping and per-item failures are
collected into the result; only a missing plan or workspace aborts a run.
"""

import logging
from enum import Enum
from typing import Callable, Iterable, Mapping

from .core.errors import (
    ApplicationInProgressError,
    MissingWorkspaceError,
    PlanError,
    StoreError,
)
from .core.plan import (
    ApplicationResult,
    Grouping,
    OrganizationPlan,
    Relocation,
    RelocationFailure,
    Workspace,
    normalize_name,
)
from .ports import GroupingStore, ItemStore

logger = logging.getLogger(__name__)

GROUPING_DESCRIPTION = "Created by Tidy Organizer"
UNRESOLVED_DESTINATION = "unresolved-destination"


class EngineState(Enum):
    """Lifecycle of one plan on one workspace."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    PLANNED = "planned"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


def dedupe_names(names: Iterable[str]) -> list[str]:
    """Drop repeated grouping names, keeping the first spelling and order."""
    seen: set[str] = set()
    unique = []
    for name in names:
        key = normalize_name(name)
        if key in seen:
            continue
        seen.add(key)
        unique.append(name.strip())
    return unique


def _index(groupings: Mapping[str, str]) -> dict[str, str]:
    return {normalize_name(name): gid for name, gid in groupings.items()}


class PlanApplicationEngine:
    """
    Applies organization plans for a single workspace.

    Store calls run strictly in sequence so that every relocation sees the
    groupings created before it. Not safe for concurrent use; callers keep
    one engine per workspace and serialize apply() calls.
    """

    def __init__(
        self,
        groupings: GroupingStore,
        items: ItemStore,
        workspace: Workspace | None,
    ):
        self.groupings = groupings
        self.items = items
        self.workspace = workspace
        self.state = EngineState.IDLE
        self.plan: OrganizationPlan | None = None
        # Filled by refresh listeners
        self.known_groupings: list[Grouping] = []
        self._refresh_listeners: list[Callable[[], None]] = []

    # ============== State ==============

    def add_refresh_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback run after every apply()."""
        self._refresh_listeners.append(listener)

    def begin_analysis(self) -> None:
        self._ensure_not_applying()
        self.plan = None
        self.state = EngineState.ANALYZING

    def plan_ready(self, plan: OrganizationPlan) -> None:
        self._ensure_not_applying()
        self.plan = plan
        self.state = EngineState.PLANNED

    def analysis_failed(self) -> None:
        self.plan = None
        self.state = EngineState.FAILED

    def _ensure_not_applying(self) -> None:
        if self.state is EngineState.APPLYING:
            raise ApplicationInProgressError("A plan is already being applied to this workspace")

    # ============== Steps ==============

    def create_missing_groupings(
        self,
        names: Iterable[str],
        existing: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        """
        Create each named grouping in order, returning name -> new id.

        Names already present in `existing` are not created again. A name the
        store rejects is logged and skipped; the rest are still created.
        """
        workspace = self._require_workspace()
        known = _index(existing or {})
        created: dict[str, str] = {}

        for name in names:
            if normalize_name(name) in known:
                logger.debug(f"Grouping already exists, not creating: {name}")
                continue

            metadata = {
                "description": GROUPING_DESCRIPTION,
                "is_manual": False,
                "author_id": workspace.author_id,
                "couple_id": workspace.couple_id,
            }
            logger.info(f"Creating grouping: {name}")
            try:
                grouping = self.groupings.create_grouping(name, metadata)
            except StoreError as e:
                logger.warning(f"Failed to create grouping {name!r}: {e.reason}")
                continue

            created[name] = grouping.id
            known[normalize_name(name)] = grouping.id

        return created

    def resolve_destination(
        self,
        relocation: Relocation,
        created_groupings: Mapping[str, str],
    ) -> str | None:
        """
        Grouping id a relocation should move its item to, or None.

        An explicit id wins; otherwise the name is looked up among the
        groupings known to this run.
        """
        return self._resolve(relocation, _index(created_groupings))

    def _resolve(self, relocation: Relocation, index: dict[str, str]) -> str | None:
        if relocation.destination_grouping_id:
            return relocation.destination_grouping_id
        if relocation.destination_grouping_name:
            return index.get(normalize_name(relocation.destination_grouping_name))
        return None

    def apply_relocations(
        self,
        relocations: Iterable[Relocation],
        created_groupings: Mapping[str, str],
    ) -> ApplicationResult:
        """
        Move each item in order, collecting successes and failures.

        Every relocation is independent: a failed one is recorded and the
        next one still runs.
        """
        index = _index(created_groupings)
        result = ApplicationResult()

        for relocation in relocations:
            failure = self._relocate(relocation, index)
            if failure is None:
                result.success_count += 1
            else:
                result.failures.append(failure)

        return result

    def _relocate(self, relocation: Relocation, index: dict[str, str]) -> RelocationFailure | None:
        target = self._resolve(relocation, index)
        if target is None:
            logger.warning(
                f"No destination for item {relocation.item_id} "
                f"(list: {relocation.destination_grouping_name!r})"
            )
            return RelocationFailure(relocation.item_id, UNRESOLVED_DESTINATION)

        logger.debug(f"Moving item {relocation.item_id} to grouping {target}")
        try:
            self.items.update_item_grouping(relocation.item_id, target)
        except StoreError as e:
            logger.warning(f"Failed to move item {relocation.item_id}: {e.reason}")
            return RelocationFailure(relocation.item_id, e.reason)
        return None

    # ============== Orchestration ==============

    def apply(self, plan: OrganizationPlan | dict | None = None) -> ApplicationResult:
        """
        Apply a plan (or the one passed to plan_ready) and return the outcome.

        Raises PlanError / MissingWorkspaceError for a missing or malformed
        plan or workspace; all store failures end up in the result instead.
        """
        self._ensure_not_applying()
        self.state = EngineState.APPLYING
        try:
            plan = self._coerce_plan(plan if plan is not None else self.plan)
            self._require_workspace()
        except PlanError:
            self.state = EngineState.FAILED
            raise

        try:
            existing = self._existing_groupings()
            names = dedupe_names(plan.new_groupings_to_create)
            created = self.create_missing_groupings(names, existing)

            result = self.apply_relocations(plan.relocations, {**existing, **created})
            result.created_groupings = created
        except BaseException:
            self.state = EngineState.FAILED
            raise

        self.plan = plan
        self.state = EngineState.APPLIED
        logger.info(f"{result.summary()} ({len(created)} lists created)")
        for failure in result.failures:
            logger.info(f"  {failure.item_id}: {failure.reason}")

        self._refresh()
        return result

    def _coerce_plan(self, plan: OrganizationPlan | dict | None) -> OrganizationPlan:
        if isinstance(plan, OrganizationPlan):
            return plan
        return OrganizationPlan.from_api(plan)

    def _require_workspace(self) -> Workspace:
        if self.workspace is None or not self.workspace.author_id:
            raise MissingWorkspaceError("No workspace author configured; cannot create lists")
        return self.workspace

    def _existing_groupings(self) -> dict[str, str]:
        try:
            groupings = self.groupings.list_groupings(self.workspace)
        except StoreError as e:
            logger.warning(f"Could not list existing groupings: {e.reason}")
            return {}
        return {g.name: g.id for g in groupings}

    def _refresh(self) -> None:
        for listener in self._refresh_listeners:
            try:
                listener()
            except Exception as e:
                logger.warning(f"Refresh listener failed: {e}")
