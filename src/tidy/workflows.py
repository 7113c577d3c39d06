"""Shared workflow layer between CLI and Telegram.

analyze_workspace asks the model for a plan; apply_plan runs it through the
engine. Both return plain domain objects for the front-ends to format.
"""

import logging

from .adapters.claude_cli import ClaudeCLIService
from .adapters.rest_backend import RestBackendAdapter
from .config import Config
from .core.analysis import (
    NOTHING_TO_ORGANIZE,
    compile_organize_prompt,
    empty_plan,
    enrich_plan,
    parse_plan_response,
)
from .core.errors import MissingWorkspaceError
from .core.plan import ApplicationResult, OrganizationPlan
from .engine import PlanApplicationEngine
from .ports import LLMService

logger = logging.getLogger(__name__)


def get_backend(config: Config) -> RestBackendAdapter:
    """Build the store adapter from config."""
    return RestBackendAdapter(config)


def create_engine(config: Config, backend: RestBackendAdapter | None = None) -> PlanApplicationEngine:
    """Build an engine for the configured workspace.

    After every apply the workspace lists are re-read into engine.known_groupings.
    """
    backend = backend or get_backend(config)
    workspace = config.workspace
    engine = PlanApplicationEngine(groupings=backend, items=backend, workspace=workspace)

    if workspace is not None:

        def reload_groupings():
            engine.known_groupings = backend.list_groupings(workspace)
            logger.info(f"Reloaded {len(engine.known_groupings)} lists after apply")

        engine.add_refresh_listener(reload_groupings)
    return engine


def analyze_workspace(
    config: Config,
    list_id: str | None = None,
    backend: RestBackendAdapter | None = None,
    llm: LLMService | None = None,
) -> OrganizationPlan:
    """Fetch lists and open items, ask the model for a plan, enrich it with list ids."""
    workspace = config.workspace
    if workspace is None:
        raise MissingWorkspaceError("AUTHOR_ID not configured. Add it to tidy.conf")

    backend = backend or get_backend(config)
    groupings = backend.list_groupings(workspace)
    items = backend.list_open_items(workspace, grouping_id=list_id)
    logger.info(f"Analyzing {len(items)} items across {len(groupings)} lists")

    if not items:
        return empty_plan(NOTHING_TO_ORGANIZE)

    prompt = compile_organize_prompt(groupings, items)
    llm = llm or ClaudeCLIService(timeout=config.claude_timeout)
    plan = parse_plan_response(llm.generate(prompt))
    return enrich_plan(plan, groupings)


def apply_plan(
    config: Config,
    plan: OrganizationPlan,
    engine: PlanApplicationEngine | None = None,
) -> ApplicationResult:
    """Apply a reviewed plan to the configured workspace."""
    engine = engine or create_engine(config)
    return engine.apply(plan)
