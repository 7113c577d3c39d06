"""Pure plan and result formatting - no I/O dependencies."""

from .plan import ApplicationResult, OrganizationPlan, Relocation


def format_move_line(relocation: Relocation) -> str:
    """
    Format a single relocation for review.

    Pure function - no I/O.
    """
    title = relocation.item_title or relocation.item_id
    source = relocation.from_grouping_name or "No list"
    target = relocation.destination_grouping_name or relocation.destination_grouping_id or "?"
    new = " (new)" if relocation.is_new_grouping else ""
    reason = f" - {relocation.reason}" if relocation.reason else ""
    return f"- {title}: {source} -> {target}{new}{reason}"


def group_moves(plan: OrganizationPlan) -> dict[str, list[Relocation]]:
    """Relocations keyed by destination, in first-seen order."""
    groups: dict[str, list[Relocation]] = {}
    for r in plan.relocations:
        key = r.destination_grouping_name or r.destination_grouping_id or "?"
        groups.setdefault(key, []).append(r)
    return groups


def format_plan(plan: OrganizationPlan) -> str:
    """
    Format a plan as markdown for review before applying.

    Pure function - no I/O.
    """
    if plan.is_empty:
        return plan.summary or "Nothing to organize."

    sections = []
    if plan.summary:
        sections.append(plan.summary)

    if plan.new_groupings_to_create:
        lists_md = "\n".join(f"- {name}" for name in plan.new_groupings_to_create)
        sections.append(f"### New Lists\n{lists_md}")

    for destination, moves in group_moves(plan).items():
        moves_md = "\n".join(format_move_line(m) for m in moves)
        sections.append(f"### {destination} ({len(moves)})\n{moves_md}")

    return "\n\n".join(sections)


def format_result(result: ApplicationResult, show_failures: bool = True) -> str:
    """
    Format an application result as a short summary.

    Pure function - no I/O.
    """
    lines = [result.summary() + "."]
    if result.created_groupings:
        lines.append("Created lists: " + ", ".join(result.created_groupings))
    if show_failures and result.failures:
        lines.append("")
        lines.append("Failed:")
        lines.extend(f"- {f.item_id}: {f.reason}" for f in result.failures)
    return "\n".join(lines)
