"""Tests for the shared workflow layer."""

from unittest.mock import MagicMock, patch

import pytest

from tidy.config import Config
from tidy.core.analysis import NOTHING_TO_ORGANIZE
from tidy.core.errors import MissingWorkspaceError, StoreError
from tidy.core.plan import Grouping, Item, OrganizationPlan, Relocation
from tidy.workflows import analyze_workspace, apply_plan, create_engine


@pytest.fixture
def config():
    return Config(backend_url="https://example.test", author_id="u1")


@pytest.fixture
def backend():
    backend = MagicMock()
    backend.list_groupings.return_value = [Grouping(id="g-books", name="Books")]
    backend.list_open_items.return_value = [Item(id="t1", title="Read Dune")]
    return backend


class TestAnalyzeWorkspace:
    def test_requires_workspace(self):
        with pytest.raises(MissingWorkspaceError):
            analyze_workspace(Config(backend_url="https://example.test"))

    def test_no_items_skips_model(self, config, backend):
        backend.list_open_items.return_value = []
        llm = MagicMock()

        plan = analyze_workspace(config, backend=backend, llm=llm)

        assert plan.is_empty
        assert plan.summary == NOTHING_TO_ORGANIZE
        llm.generate.assert_not_called()

    def test_parses_and_enriches(self, config, backend):
        llm = MagicMock()
        llm.generate.return_value = '```json\n{"moves": [{"task_id": "t1", "to_list": "Books"}]}\n```'

        plan = analyze_workspace(config, backend=backend, llm=llm)

        assert plan.relocations[0].destination_grouping_id == "g-books"
        prompt = llm.generate.call_args.args[0]
        assert "Read Dune" in prompt

    def test_passes_list_scope(self, config, backend):
        llm = MagicMock()
        llm.generate.return_value = "{}"

        analyze_workspace(config, list_id="g-inbox", backend=backend, llm=llm)

        backend.list_open_items.assert_called_once_with(config.workspace, grouping_id="g-inbox")

    @patch("tidy.workflows.ClaudeCLIService")
    def test_uses_claude_by_default(self, mock_cls, config, backend):
        mock_cls.return_value.generate.return_value = "{}"

        analyze_workspace(config, backend=backend)

        mock_cls.assert_called_once_with(timeout=config.claude_timeout)

    def test_propagates_model_errors(self, config, backend):
        llm = MagicMock()
        llm.generate.side_effect = RuntimeError("Claude CLI not found")

        with pytest.raises(RuntimeError, match="Claude CLI not found"):
            analyze_workspace(config, backend=backend, llm=llm)


class TestApplyPlan:
    def test_runs_engine_against_backend(self, config, backend):
        backend.create_grouping.return_value = Grouping(id="g-new", name="Trip")
        plan = OrganizationPlan(
            new_groupings_to_create=("Trip",),
            relocations=(Relocation(item_id="t1", destination_grouping_name="Trip"),),
        )

        result = apply_plan(config, plan, engine=create_engine(config, backend))

        assert result.created_groupings == {"Trip": "g-new"}
        assert result.success_count == 1
        backend.update_item_grouping.assert_called_once_with("t1", "g-new")

    @patch("tidy.workflows.get_backend")
    def test_builds_engine_from_config(self, mock_get_backend, config, backend):
        mock_get_backend.return_value = backend

        result = apply_plan(config, OrganizationPlan())

        mock_get_backend.assert_called_once_with(config)
        assert result.success_count == 0

    def test_reloads_lists_after_apply(self, config, backend):
        backend.create_grouping.return_value = Grouping(id="g-new", name="Trip")
        engine = create_engine(config, backend)
        refreshed = [Grouping(id="g-books", name="Books"), Grouping(id="g-new", name="Trip")]
        backend.list_groupings.side_effect = [[Grouping(id="g-books", name="Books")], refreshed]

        apply_plan(config, OrganizationPlan(new_groupings_to_create=("Trip",)), engine=engine)

        assert backend.list_groupings.call_count == 2
        assert engine.known_groupings == refreshed

    def test_failed_reload_keeps_result(self, config, backend):
        engine = create_engine(config, backend)
        backend.list_groupings.side_effect = [[], StoreError("network-error")]

        result = apply_plan(config, OrganizationPlan(), engine=engine)

        assert result.success_count == 0
        assert engine.known_groupings == []
