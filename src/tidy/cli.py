"""Tidy CLI - AI list organizer."""

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from .config import load_config
from .core.errors import PlanError, StoreError
from .core.plan import OrganizationPlan
from .core.report import format_plan, format_result
from .workflows import analyze_workspace, apply_plan, get_backend


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Tidy - organize lists and notes with AI."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.WARNING,
    )


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def lists(as_json: bool):
    """List the workspace's lists."""
    config = load_config()
    if config.workspace is None:
        _fail("AUTHOR_ID not configured. Add it to tidy.conf")

    try:
        groupings = get_backend(config).list_groupings(config.workspace)
    except (StoreError, ValueError) as e:
        _fail(str(e))

    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "id": g.id,
                        "name": g.name,
                        "created_by": g.created_by,
                        "shared": g.couple_id is not None,
                    }
                    for g in groupings
                ],
                indent=2,
            )
        )
        return

    if not groupings:
        click.echo("No lists yet.")
        return

    for g in groupings:
        marker = "*" if g.created_by == "organizer" else " "
        click.echo(f"[{marker}] {g.name}  ({g.id})")


@main.command()
@click.option("--list-id", default=None, help="Only analyze items in this list")
@click.option("--json", "as_json", is_flag=True, help="Output plan as JSON")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), help="Save plan JSON to a file")
def analyze(list_id: str | None, as_json: bool, output: Path | None):
    """Ask the organizer for a reorganization plan."""
    config = load_config()
    try:
        plan = analyze_workspace(config, list_id=list_id)
    except (PlanError, StoreError, RuntimeError, ValueError) as e:
        _fail(str(e))

    if output:
        output.write_text(json.dumps(plan.to_api(), indent=2))
        click.echo(f"Plan saved to {output}")

    if as_json:
        click.echo(json.dumps(plan.to_api(), indent=2))
    else:
        click.echo(format_plan(plan))


def _load_plan(path: Path) -> OrganizationPlan:
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise PlanError(f"{path} is not valid JSON: {e}")
    return OrganizationPlan.from_api(data)


def _show_result(result, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo(format_result(result))


@main.command("apply")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--exclude-item", multiple=True, help="Item id to leave where it is")
@click.option("--exclude-list", multiple=True, help="New list name to skip creating")
@click.option("--json", "as_json", is_flag=True, help="Output result as JSON")
def apply_cmd(plan_file: Path, exclude_item: tuple[str, ...], exclude_list: tuple[str, ...], as_json: bool):
    """Apply a saved plan."""
    config = load_config()
    try:
        plan = _load_plan(plan_file).exclude(set(exclude_item), set(exclude_list))
        result = apply_plan(config, plan)
    except (PlanError, ValueError) as e:
        _fail(str(e))

    _show_result(result, as_json)


@main.command()
@click.option("--list-id", default=None, help="Only analyze items in this list")
@click.option("--yes", "-y", is_flag=True, help="Apply without confirmation")
@click.option("--json", "as_json", is_flag=True, help="Output result as JSON")
def organize(list_id: str | None, yes: bool, as_json: bool):
    """Analyze, review and apply in one go."""
    config = load_config()
    try:
        plan = analyze_workspace(config, list_id=list_id)
    except (PlanError, StoreError, RuntimeError, ValueError) as e:
        _fail(str(e))

    click.echo(format_plan(plan))
    if plan.is_empty:
        return

    if not yes and not click.confirm("\nApply these changes?"):
        click.echo("Cancelled.")
        return

    try:
        result = apply_plan(config, plan)
    except PlanError as e:
        _fail(str(e))

    click.echo()
    _show_result(result, as_json)


@main.command()
def bot():
    """Run the Telegram bot. Use `tidy --debug bot` for debug logging."""
    root = logging.getLogger()
    if root.level > logging.INFO:
        root.setLevel(logging.INFO)

    try:
        from .telegram_bot import run_bot
        click.echo("Starting Tidy Telegram bot...")
        click.echo("Press Ctrl+C to stop")
        run_bot()
    except ImportError as e:
        click.echo("Error: Missing dependencies. Run 'pip install python-telegram-bot telegramify-markdown'", err=True)
        click.echo(f"Details: {e}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
