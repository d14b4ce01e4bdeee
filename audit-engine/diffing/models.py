from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class ChangeType(Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


class ContentKind(Enum):
    """Tag for chunks of the simplified-content line diff."""
    STRUCTURAL = "STRUCTURAL"  # chunk contains markup
    TEXTUAL = "TEXTUAL"        # plain text


# Field names the UI keys its icons on. Presentation only.
FIELD_NAME_BY_KIND = {
    ContentKind.STRUCTURAL: "sections",
    ContentKind.TEXTUAL: "bodyText",
}


@dataclass(frozen=True)
class FieldChange:
    field: str
    old_value: Any
    new_value: Any
    change_type: ChangeType
    kind: Optional[ContentKind] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "field": self.field,
            "oldValue": self.old_value,
            "newValue": self.new_value,
            "changeType": self.change_type.value,
        }
        if self.kind is not None:
            out["kind"] = self.kind.value
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldChange":
        kind = data.get("kind")
        return cls(
            field=data["field"],
            old_value=data.get("oldValue"),
            new_value=data.get("newValue"),
            change_type=ChangeType(data.get("changeType", "modified")),
            kind=ContentKind(kind) if kind else None,
        )


@dataclass(frozen=True)
class StructuralDiffResult:
    merged_html: str
    additions: int
    deletions: int
    stylesheets: List[str] = field(default_factory=list)
    base_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "diffHtml": self.merged_html,
            "stats": {"additions": self.additions, "deletions": self.deletions},
            "baseUrl": self.base_url,
            "stylesheets": list(self.stylesheets),
        }
