"""
Result types produced by the reconciliation engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from catalog_builder.catalog.models import EntityKind


class SyncStatus(str, Enum):
    """Where a folder exists: on the site, in remote storage, or both."""

    SYNCED = "synced"
    SITE_ONLY = "site_only"
    REMOTE_ONLY = "remote_only"
    UNGROUPED = "ungrouped"  # local entity whose ancestors do not resolve


@dataclass(slots=True)
class FolderItem:
    """
    One row of a comparison.

    ``path`` is None for ungrouped entities, ``entity_id`` is None for
    remote-only folders.
    """

    name: str
    kind: EntityKind
    status: SyncStatus
    path: Optional[str] = None
    entity_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "status": self.status.value,
            "path": self.path,
            "entity_id": self.entity_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FolderItem":
        return cls(
            name=data["name"],
            kind=EntityKind(data["kind"]),
            status=SyncStatus(data["status"]),
            path=data.get("path"),
            entity_id=data.get("entity_id"),
        )


@dataclass(slots=True)
class LevelSummary:
    total: int = 0
    synced: int = 0
    site_only: int = 0
    remote_only: int = 0
    ungrouped: int = 0

    @classmethod
    def from_items(cls, items: List[FolderItem]) -> "LevelSummary":
        summary = cls(total=len(items))
        for item in items:
            if item.status is SyncStatus.SYNCED:
                summary.synced += 1
            elif item.status is SyncStatus.SITE_ONLY:
                summary.site_only += 1
            elif item.status is SyncStatus.REMOTE_ONLY:
                summary.remote_only += 1
            else:
                summary.ungrouped += 1
        return summary

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "synced": self.synced,
            "site_only": self.site_only,
            "remote_only": self.remote_only,
            "ungrouped": self.ungrouped,
        }


@dataclass(slots=True)
class SyncReport:
    """
    Comparison of the store against the remote folder listing.

    ``fetch_error`` is set when the listing could not be read; the report
    then treats the remote side as empty.
    """

    groups: List[FolderItem] = field(default_factory=list)
    ranges: List[FolderItem] = field(default_factory=list)
    products: List[FolderItem] = field(default_factory=list)
    summaries: Dict[EntityKind, LevelSummary] = field(default_factory=dict)
    fetch_error: Optional[str] = None

    def items(self, kind: EntityKind) -> List[FolderItem]:
        if kind is EntityKind.GROUP:
            return self.groups
        if kind is EntityKind.RANGE:
            return self.ranges
        return self.products

    def all_items(self) -> List[FolderItem]:
        return self.groups + self.ranges + self.products

    def with_status(self, status: SyncStatus) -> List[FolderItem]:
        return [item for item in self.all_items() if item.status is status]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groups": [item.to_dict() for item in self.groups],
            "ranges": [item.to_dict() for item in self.ranges],
            "products": [item.to_dict() for item in self.products],
            "summaries": {kind.value: summary.to_dict() for kind, summary in self.summaries.items()},
            "fetch_error": self.fetch_error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncReport":
        """Rebuild a report from its ``to_dict`` form (e.g. a handler response body)."""
        report = cls(fetch_error=data.get("fetch_error"))
        for kind in EntityKind:
            report.items(kind).extend(
                FolderItem.from_dict(item) for item in data.get(f"{kind.value}s", [])
            )
        for kind_value, counts in (data.get("summaries") or {}).items():
            report.summaries[EntityKind(kind_value)] = LevelSummary(**counts)
        return report


@dataclass(slots=True)
class ItemError:
    path: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "error": self.error}


@dataclass(slots=True)
class ActionResult:
    """Outcome of a batch action. Failures of single items never abort the batch."""

    success_count: int = 0
    errors: List[ItemError] = field(default_factory=list)
    skipped: int = 0

    @property
    def failed_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success_count": self.success_count,
            "failed_count": self.failed_count,
            "skipped": self.skipped,
            "errors": [error.to_dict() for error in self.errors],
        }


@dataclass(slots=True)
class PlannedEntity:
    kind: EntityKind
    name: str
    path: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "name": self.name, "path": self.path}


@dataclass(slots=True)
class ImportPlan:
    """
    Dry run of an import: what would be created, reused and linked.

    ``links`` holds (parent path, child path) pairs; ``invalid`` lists
    selected paths the import would reject.
    """

    create: List[PlannedEntity] = field(default_factory=list)
    reuse: List[PlannedEntity] = field(default_factory=list)
    links: List[tuple] = field(default_factory=list)
    invalid: List[ItemError] = field(default_factory=list)
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "create": [entity.to_dict() for entity in self.create],
            "reuse": [entity.to_dict() for entity in self.reuse],
            "links": [list(link) for link in self.links],
            "invalid": [error.to_dict() for error in self.invalid],
            "skipped": self.skipped,
        }
