"""Tests for the plan application engine."""

import logging

import pytest

from tidy.core.errors import (
    ApplicationInProgressError,
    ItemNotFoundError,
    MissingWorkspaceError,
    PlanError,
    StoreError,
)
from tidy.core.plan import Grouping, OrganizationPlan, Relocation, Workspace
from tidy.engine import (
    GROUPING_DESCRIPTION,
    UNRESOLVED_DESTINATION,
    EngineState,
    PlanApplicationEngine,
    dedupe_names,
)


class FakeGroupingStore:
    """In-memory grouping store that records every call."""

    def __init__(self, existing=None, ids=None, fail_on=(), list_error=None):
        self.groupings: list[Grouping] = list(existing or [])
        self._ids = iter(ids or [])
        self._counter = 0
        self.fail_on = set(fail_on)
        self.list_error = list_error
        self.create_calls: list[tuple[str, dict]] = []

    def list_groupings(self, workspace):
        if self.list_error:
            raise self.list_error
        return list(self.groupings)

    def create_grouping(self, name, metadata):
        self.create_calls.append((name, metadata))
        if name in self.fail_on:
            raise StoreError("duplicate-name", f"cannot create {name}")
        self._counter += 1
        grouping = Grouping(id=next(self._ids, f"g-{self._counter}"), name=name, created_by="organizer")
        self.groupings.append(grouping)
        return grouping

    def names(self) -> list[str]:
        return [g.name for g in self.groupings]


class FakeItemStore:
    """In-memory item store: item id -> grouping id."""

    def __init__(self, items=None, denied=()):
        self.items: dict[str, str | None] = dict(items or {})
        self.denied = set(denied)
        self.update_calls: list[tuple[str, str]] = []

    def update_item_grouping(self, item_id, grouping_id):
        self.update_calls.append((item_id, grouping_id))
        if item_id in self.denied:
            raise StoreError("permission-denied")
        if item_id not in self.items:
            raise ItemNotFoundError(item_id)
        self.items[item_id] = grouping_id

    def list_open_items(self, workspace, grouping_id=None):
        return []


@pytest.fixture
def workspace():
    return Workspace(author_id="user-1", couple_id="couple-1")


@pytest.fixture
def grouping_store():
    return FakeGroupingStore()


@pytest.fixture
def item_store():
    return FakeItemStore(items={"i1": None, "i2": None, "i3": "g-old"})


@pytest.fixture
def engine(grouping_store, item_store, workspace):
    return PlanApplicationEngine(grouping_store, item_store, workspace)


def make_plan(names=(), relocations=()) -> OrganizationPlan:
    return OrganizationPlan(new_groupings_to_create=tuple(names), relocations=tuple(relocations))


class TestDedupeNames:
    def test_removes_exact_duplicates(self):
        assert dedupe_names(["Groceries", "Groceries"]) == ["Groceries"]

    def test_keeps_first_seen_order(self):
        assert dedupe_names(["Trip", "Books", "Trip", "Receipts"]) == ["Trip", "Books", "Receipts"]

    def test_case_and_whitespace_insensitive(self):
        assert dedupe_names(["Books", " books ", "BOOKS"]) == ["Books"]

    def test_empty(self):
        assert dedupe_names([]) == []


class TestEndToEnd:
    def test_trip_scenario(self, item_store, workspace):
        groupings = FakeGroupingStore(ids=["g-new"])
        engine = PlanApplicationEngine(groupings, item_store, workspace)
        plan = make_plan(
            ["Trip"],
            [
                Relocation(item_id="i1", destination_grouping_name="Trip"),
                Relocation(item_id="i2", destination_grouping_id="g-existing"),
            ],
        )

        result = engine.apply(plan)

        assert result.created_groupings == {"Trip": "g-new"}
        assert result.success_count == 2
        assert result.failures == []
        assert item_store.items["i1"] == "g-new"
        assert item_store.items["i2"] == "g-existing"

    def test_item_not_found_is_reported_and_others_apply(self, engine, item_store):
        plan = make_plan(
            relocations=[
                Relocation(item_id="i1", destination_grouping_id="g-a"),
                Relocation(item_id="ghost", destination_grouping_id="g-a"),
                Relocation(item_id="i2", destination_grouping_id="g-b"),
            ]
        )

        result = engine.apply(plan)

        assert result.success_count == 2
        assert [(f.item_id, f.reason) for f in result.failures] == [("ghost", "not-found")]
        assert item_store.items["i1"] == "g-a"
        assert item_store.items["i2"] == "g-b"

    def test_store_reason_is_kept(self, grouping_store, workspace):
        items = FakeItemStore(items={"i1": None}, denied={"i1"})
        engine = PlanApplicationEngine(grouping_store, items, workspace)

        result = engine.apply(make_plan(relocations=[Relocation(item_id="i1", destination_grouping_id="g")]))

        assert result.failures[0].reason == "permission-denied"
        assert items.items["i1"] is None


class TestCreateMissingGroupings:
    def test_duplicate_names_create_one_grouping(self, engine, grouping_store):
        result = engine.apply(make_plan(["Groceries", "Groceries"]))

        assert grouping_store.names() == ["Groceries"]
        assert len(grouping_store.create_calls) == 1
        assert list(result.created_groupings) == ["Groceries"]

    def test_creates_in_input_order(self, engine, grouping_store):
        engine.create_missing_groupings(["C", "A", "B"])
        assert [name for name, _ in grouping_store.create_calls] == ["C", "A", "B"]

    def test_failure_skips_name_and_continues(self, workspace, item_store):
        groupings = FakeGroupingStore(fail_on={"X"})
        engine = PlanApplicationEngine(groupings, item_store, workspace)

        created = engine.create_missing_groupings(["X", "Y"])

        assert "X" not in created
        assert "Y" in created
        assert [name for name, _ in groupings.create_calls] == ["X", "Y"]

    def test_skips_names_that_already_exist(self, engine, grouping_store):
        created = engine.create_missing_groupings(["Books", "Trip"], existing={"books": "g-books"})

        assert created == {"Trip": "g-1"}
        assert [name for name, _ in grouping_store.create_calls] == ["Trip"]

    def test_passes_organizer_metadata(self, engine, grouping_store):
        engine.create_missing_groupings(["Trip"])

        _, metadata = grouping_store.create_calls[0]
        assert metadata == {
            "description": GROUPING_DESCRIPTION,
            "is_manual": False,
            "author_id": "user-1",
            "couple_id": "couple-1",
        }

    def test_logs_failure(self, workspace, item_store, caplog):
        engine = PlanApplicationEngine(FakeGroupingStore(fail_on={"X"}), item_store, workspace)

        with caplog.at_level(logging.WARNING, logger="tidy.engine"):
            engine.create_missing_groupings(["X"])

        assert "duplicate-name" in caplog.text


class TestResolveDestination:
    def test_explicit_id_wins(self, engine):
        r = Relocation(item_id="i1", destination_grouping_id="g-1", destination_grouping_name="Trip")
        assert engine.resolve_destination(r, {"Trip": "g-2"}) == "g-1"

    def test_looks_up_name(self, engine):
        r = Relocation(item_id="i1", destination_grouping_name="Trip")
        assert engine.resolve_destination(r, {"Trip": "g-2"}) == "g-2"

    def test_name_lookup_ignores_case(self, engine):
        r = Relocation(item_id="i1", destination_grouping_name="trip ")
        assert engine.resolve_destination(r, {"Trip": "g-2"}) == "g-2"

    def test_unknown_name(self, engine):
        r = Relocation(item_id="i1", destination_grouping_name="Nowhere")
        assert engine.resolve_destination(r, {"Trip": "g-2"}) is None

    def test_no_destination(self, engine):
        assert engine.resolve_destination(Relocation(item_id="i1"), {"Trip": "g-2"}) is None


class TestApplyRelocations:
    def test_unresolved_name_makes_no_store_call(self, engine, item_store):
        result = engine.apply(
            make_plan(relocations=[Relocation(item_id="i1", destination_grouping_name="Nowhere")])
        )

        assert [(f.item_id, f.reason) for f in result.failures] == [("i1", UNRESOLVED_DESTINATION)]
        assert item_store.update_calls == []
        assert item_store.items["i1"] is None

    def test_missing_destination_is_unresolved(self, engine, item_store):
        result = engine.apply(make_plan(relocations=[Relocation(item_id="i1")]))

        assert result.failures[0].reason == UNRESOLVED_DESTINATION
        assert item_store.update_calls == []

    def test_failed_grouping_fails_dependent_moves_only(self, workspace, item_store):
        groupings = FakeGroupingStore(fail_on={"X"})
        engine = PlanApplicationEngine(groupings, item_store, workspace)
        plan = make_plan(
            ["X", "Y"],
            [
                Relocation(item_id="i1", destination_grouping_name="X"),
                Relocation(item_id="i2", destination_grouping_name="Y"),
                Relocation(item_id="i3", destination_grouping_id="g-kept"),
            ],
        )

        result = engine.apply(plan)

        assert result.success_count == 2
        assert [(f.item_id, f.reason) for f in result.failures] == [("i1", UNRESOLVED_DESTINATION)]
        assert item_store.items["i1"] is None
        assert item_store.items["i2"] == result.created_groupings["Y"]
        assert item_store.items["i3"] == "g-kept"

    def test_name_resolves_to_pre_existing_grouping(self, item_store, workspace):
        groupings = FakeGroupingStore(existing=[Grouping(id="g-books", name="Books")])
        engine = PlanApplicationEngine(groupings, item_store, workspace)

        result = engine.apply(make_plan(relocations=[Relocation(item_id="i1", destination_grouping_name="books")]))

        assert result.success_count == 1
        assert item_store.items["i1"] == "g-books"

    def test_runs_in_input_order(self, engine, item_store):
        engine.apply(
            make_plan(
                relocations=[
                    Relocation(item_id="i2", destination_grouping_id="g-a"),
                    Relocation(item_id="i1", destination_grouping_id="g-b"),
                ]
            )
        )
        assert item_store.update_calls == [("i2", "g-a"), ("i1", "g-b")]

    def test_same_item_twice_last_write_wins(self, engine, item_store):
        # Duplicate item ids are not rejected; both writes count.
        result = engine.apply(
            make_plan(
                relocations=[
                    Relocation(item_id="i1", destination_grouping_id="g-a"),
                    Relocation(item_id="i1", destination_grouping_id="g-b"),
                ]
            )
        )

        assert result.success_count == 2
        assert item_store.items["i1"] == "g-b"


class TestIdempotence:
    def test_reapplying_plan_creates_no_duplicates(self, engine, grouping_store, item_store):
        plan = make_plan(
            ["Trip"],
            [
                Relocation(item_id="i1", destination_grouping_name="Trip"),
                Relocation(item_id="i2", destination_grouping_id="g-existing"),
                Relocation(item_id="i3", destination_grouping_name="Nowhere"),
            ],
        )

        first = engine.apply(plan)
        second = engine.apply(plan)

        assert grouping_store.names() == ["Trip"]
        assert second.created_groupings == {}
        assert second.success_count == 2
        assert [f.item_id for f in second.failures] == ["i3"]
        assert item_store.items["i1"] == first.created_groupings["Trip"]

    def test_listing_failure_still_applies(self, workspace, item_store):
        groupings = FakeGroupingStore(list_error=StoreError("network-error"))
        engine = PlanApplicationEngine(groupings, item_store, workspace)

        result = engine.apply(make_plan(["Trip"], [Relocation(item_id="i1", destination_grouping_name="Trip")]))

        assert result.success_count == 1
        assert engine.state is EngineState.APPLIED


class TestRefresh:
    def test_listener_called_after_apply(self, engine):
        calls = []
        engine.add_refresh_listener(lambda: calls.append("refresh"))

        engine.apply(make_plan(relocations=[Relocation(item_id="ghost", destination_grouping_id="g")]))

        assert calls == ["refresh"]

    def test_listener_error_is_swallowed(self, engine):
        def broken():
            raise RuntimeError("listener down")

        engine.add_refresh_listener(broken)
        result = engine.apply(make_plan(relocations=[Relocation(item_id="i1", destination_grouping_id="g")]))

        assert result.success_count == 1
        assert engine.state is EngineState.APPLIED


class TestStructuralErrors:
    def test_missing_plan(self, engine, grouping_store, item_store):
        with pytest.raises(PlanError):
            engine.apply(None)
        assert engine.state is EngineState.FAILED
        assert grouping_store.create_calls == []
        assert item_store.update_calls == []

    def test_malformed_plan_dict(self, engine):
        with pytest.raises(PlanError):
            engine.apply({"moves": "not a list"})
        assert engine.state is EngineState.FAILED

    def test_non_string_destination_rejects_whole_plan(self, engine, item_store):
        with pytest.raises(PlanError):
            engine.apply({"moves": [{"task_id": "i1", "to_list": 5}, {"task_id": "i2", "to_list_id": "g"}]})
        assert engine.state is EngineState.FAILED
        assert item_store.update_calls == []

    def test_missing_workspace(self, grouping_store, item_store):
        engine = PlanApplicationEngine(grouping_store, item_store, None)

        with pytest.raises(MissingWorkspaceError):
            engine.apply(make_plan(["Trip"]))
        assert grouping_store.create_calls == []

    def test_accepts_plan_dict(self, engine, item_store):
        result = engine.apply({"new_lists_to_create": [], "moves": [{"task_id": "i1", "to_list_id": "g-a"}]})
        assert result.success_count == 1
        assert item_store.items["i1"] == "g-a"


class TestStateMachine:
    def test_full_cycle(self, engine):
        assert engine.state is EngineState.IDLE
        engine.begin_analysis()
        assert engine.state is EngineState.ANALYZING

        plan = make_plan(relocations=[Relocation(item_id="i1", destination_grouping_id="g")])
        engine.plan_ready(plan)
        assert engine.state is EngineState.PLANNED

        result = engine.apply()
        assert engine.state is EngineState.APPLIED
        assert result.success_count == 1

    def test_partial_failure_is_still_applied(self, engine):
        engine.apply(make_plan(relocations=[Relocation(item_id="ghost", destination_grouping_id="g")]))
        assert engine.state is EngineState.APPLIED

    def test_new_plan_restarts_analysis(self, engine):
        engine.apply(make_plan())
        engine.begin_analysis()
        assert engine.state is EngineState.ANALYZING
        assert engine.plan is None

    def test_rejects_apply_while_applying(self, engine):
        engine.state = EngineState.APPLYING
        with pytest.raises(ApplicationInProgressError):
            engine.apply(make_plan())

    def test_rejects_analysis_while_applying(self, engine):
        engine.state = EngineState.APPLYING
        with pytest.raises(ApplicationInProgressError):
            engine.begin_analysis()
