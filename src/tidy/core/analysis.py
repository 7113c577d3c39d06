"""Pure helpers around the AI organization analysis - no I/O dependencies."""

import json
import logging
import re
from dataclasses import replace

from .errors import PlanError
from .plan import Grouping, Item, OrganizationPlan, normalize_name

logger = logging.getLogger(__name__)

NOTHING_TO_ORGANIZE = "No tasks to organize."
ANALYSIS_UNAVAILABLE = "Unable to analyze tasks at this time."

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

PLAN_SCHEMA = """{
  "new_lists_to_create": ["List Name 1", "List Name 2"],
  "moves": [
    {
      "task_id": "uuid",
      "task_title": "Task summary",
      "from_list": "Current List Name or null",
      "to_list": "Target List Name",
      "is_new_list": false,
      "reason": "Brief explanation"
    }
  ],
  "summary": "Brief summary of changes (e.g., 'Found 5 tasks to organize into 3 lists')"
}"""


def compile_organize_prompt(groupings: list[Grouping], items: list[Item]) -> str:
    """
    Build the organizer prompt for a set of lists and open items.

    Pure function - no I/O.
    """
    names_by_id = {g.id: g.name for g in groupings}
    list_names = [g.name for g in groupings]
    task_infos = [
        {
            "id": item.id,
            "title": item.title,
            "currentList": names_by_id.get(item.grouping_id) if item.grouping_id else None,
        }
        for item in items
    ]

    return f"""You are an expert Professional Organizer AI. Your goal is to declutter a user's generic lists and organize tasks into logical categories.

Current Context:
- Existing Lists: {json.dumps(list_names)}
- Tasks to Review: {json.dumps(task_infos)}

Rules for Organization:
1. **Identify Clusters:** Look for groups of 2+ tasks related to a specific topic (e.g., Finance, Travel, Reading, Receipts).
2. **Prioritize Existing Lists:** If a task fits a list that ALREADY exists, move it there.
3. **Suggest New Lists:** If you find 3+ tasks that form a strong cluster but have no home, suggest a NEW list name.
4. **Be Conservative:** If a task is ambiguous, leave it alone. Only move things that clearly belong elsewhere.
5. **Generic Lists:** Items in generic lists like "Personal", "Inbox", "General", "Tasks", "Misc" are the main candidates for organization.

Return ONLY valid JSON matching this exact schema:
{PLAN_SCHEMA}

Important:
- Do NOT include tasks that are already in the correct list
- Only suggest moves for tasks that would clearly benefit from reorganization
- Keep reasons concise (under 15 words)
- If no changes needed, return empty arrays"""


def empty_plan(summary: str) -> OrganizationPlan:
    return OrganizationPlan(summary=summary)


def parse_plan_response(text: str) -> OrganizationPlan:
    """
    Parse the model's reply into a plan.

    Accepts bare JSON or JSON inside a ``` fence. Unusable output becomes an
    empty plan rather than an error.
    """
    raw = text
    match = _FENCED_JSON.search(text)
    if match:
        raw = match.group(1)

    try:
        plan = OrganizationPlan.from_api(json.loads(raw.strip()))
    except (json.JSONDecodeError, PlanError) as e:
        logger.error(f"Failed to parse organization plan: {e}")
        logger.debug(f"Raw model output: {text}")
        return empty_plan(ANALYSIS_UNAVAILABLE)

    if not plan.summary:
        plan = replace(plan, summary=f"Found {len(plan.relocations)} tasks to organize")
    return plan


def enrich_plan(plan: OrganizationPlan, groupings: list[Grouping]) -> OrganizationPlan:
    """
    Attach existing grouping ids to moves that name an existing list.

    Moves to a list that does not exist yet but is slated for creation are
    flagged as new-list moves. Pure function - no I/O.
    """
    ids_by_name = {normalize_name(g.name): g.id for g in groupings}
    planned = {normalize_name(n) for n in plan.new_groupings_to_create}

    relocations = []
    for r in plan.relocations:
        name = r.destination_grouping_name
        key = normalize_name(name) if name else None
        existing_id = ids_by_name.get(key) if key else None
        relocations.append(
            replace(
                r,
                destination_grouping_id=r.destination_grouping_id or existing_id,
                is_new_grouping=existing_id is None and key in planned,
            )
        )

    return replace(plan, relocations=tuple(relocations))
