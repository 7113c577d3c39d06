"""Pure plan domain model - no I/O dependencies."""

from dataclasses import dataclass, field, replace

from .errors import PlanError

ORGANIZER = "organizer"
USER = "user"


def normalize_name(name: str) -> str:
    """Key used to compare grouping names."""
    return name.strip().casefold()


@dataclass(frozen=True)
class Relocation:
    """An instruction to move one item into a grouping."""

    item_id: str
    destination_grouping_id: str | None = None
    destination_grouping_name: str | None = None
    # Display-only fields from the analysis step
    item_title: str = ""
    from_grouping_name: str | None = None
    is_new_grouping: bool = False
    reason: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Relocation":
        """Create Relocation from a plan `moves` entry."""
        if not isinstance(data, dict):
            raise PlanError(f"Move must be an object, got {type(data).__name__}")
        item_id = data.get("task_id")
        if not isinstance(item_id, str) or not item_id:
            raise PlanError(f"Move is missing task_id: {data!r}")
        for key in ("to_list", "to_list_id"):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise PlanError(f"Move {item_id}: {key} must be a string, got {type(data[key]).__name__}")
        return cls(
            item_id=item_id,
            destination_grouping_id=data.get("to_list_id") or None,
            destination_grouping_name=data.get("to_list") or None,
            item_title=data.get("task_title") or "",
            from_grouping_name=data.get("from_list") or None,
            is_new_grouping=bool(data.get("is_new_list", False)),
            reason=data.get("reason") or "",
        )

    def to_api(self) -> dict:
        return {
            "task_id": self.item_id,
            "task_title": self.item_title,
            "from_list": self.from_grouping_name,
            "to_list": self.destination_grouping_name,
            "to_list_id": self.destination_grouping_id,
            "is_new_list": self.is_new_grouping,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class OrganizationPlan:
    """New groupings to create plus relocations to apply."""

    new_groupings_to_create: tuple[str, ...] = ()
    relocations: tuple[Relocation, ...] = ()
    summary: str = ""

    @classmethod
    def from_api(cls, data: dict | None) -> "OrganizationPlan":
        """
        Create OrganizationPlan from the analysis JSON.

        Raises PlanError if the payload is missing or malformed.
        """
        if data is None:
            raise PlanError("No plan provided")
        if not isinstance(data, dict):
            raise PlanError(f"Plan must be an object, got {type(data).__name__}")

        names = data.get("new_lists_to_create") or []
        moves = data.get("moves") or []
        if not isinstance(names, list):
            raise PlanError("new_lists_to_create must be a list")
        if not isinstance(moves, list):
            raise PlanError("moves must be a list")

        for name in names:
            if not isinstance(name, str) or not name.strip():
                raise PlanError(f"Invalid list name: {name!r}")

        return cls(
            new_groupings_to_create=tuple(names),
            relocations=tuple(Relocation.from_api(m) for m in moves),
            summary=data.get("summary") or "",
        )

    def to_api(self) -> dict:
        return {
            "new_lists_to_create": list(self.new_groupings_to_create),
            "moves": [r.to_api() for r in self.relocations],
            "summary": self.summary,
        }

    @property
    def is_empty(self) -> bool:
        return not self.new_groupings_to_create and not self.relocations

    def exclude(
        self,
        item_ids: set[str] | None = None,
        grouping_names: set[str] | None = None,
    ) -> "OrganizationPlan":
        """
        Return a copy without the given relocations and new groupings.

        Excluding a new grouping also drops the moves that target it.
        """
        item_ids = item_ids or set()
        dropped = {normalize_name(n) for n in grouping_names or set()}

        def keep(r: Relocation) -> bool:
            if r.item_id in item_ids:
                return False
            if r.is_new_grouping and r.destination_grouping_name:
                return normalize_name(r.destination_grouping_name) not in dropped
            return True

        return replace(
            self,
            new_groupings_to_create=tuple(
                n for n in self.new_groupings_to_create if normalize_name(n) not in dropped
            ),
            relocations=tuple(r for r in self.relocations if keep(r)),
        )


@dataclass(frozen=True)
class Workspace:
    """The author (and optional couple) that owns groupings and items."""

    author_id: str
    couple_id: str | None = None


@dataclass
class Grouping:
    """A named list that items belong to."""

    id: str
    name: str
    created_by: str = USER
    description: str = ""
    couple_id: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "Grouping":
        """Create Grouping from a backend row."""
        return cls(
            id=data["id"],
            name=data["name"],
            created_by=USER if data.get("is_manual", True) else ORGANIZER,
            description=data.get("description") or "",
            couple_id=data.get("couple_id"),
        )


@dataclass
class Item:
    """A note or task that can be relocated."""

    id: str
    title: str
    grouping_id: str | None = None
    category: str = ""
    priority: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "Item":
        """Create Item from a backend row."""
        return cls(
            id=data["id"],
            title=data.get("summary") or data.get("original_text") or "",
            grouping_id=data.get("list_id"),
            category=data.get("category") or "",
            priority=data.get("priority"),
        )


@dataclass(frozen=True)
class RelocationFailure:
    item_id: str
    reason: str


@dataclass
class ApplicationResult:
    """Outcome of applying one plan."""

    created_groupings: dict[str, str] = field(default_factory=dict)
    success_count: int = 0
    failures: list[RelocationFailure] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def summary(self) -> str:
        """One-line report, e.g. 'Organized 4 items, 1 failed'."""
        noun = "item" if self.success_count == 1 else "items"
        line = f"Organized {self.success_count} {noun}"
        if self.failures:
            line += f", {self.failure_count} failed"
        return line

    def to_dict(self) -> dict:
        return {
            "created_groupings": dict(self.created_groupings),
            "success_count": self.success_count,
            "failures": [{"item_id": f.item_id, "reason": f.reason} for f in self.failures],
        }
