"""Reconciliation of the catalog store with remote folder storage."""

from .engine import ReconciliationEngine
from .models import (
    ActionResult,
    FolderItem,
    ImportPlan,
    ItemError,
    LevelSummary,
    PlannedEntity,
    SyncReport,
    SyncStatus,
)

__all__ = [
    "ReconciliationEngine",
    "ActionResult",
    "FolderItem",
    "ImportPlan",
    "ItemError",
    "LevelSummary",
    "PlannedEntity",
    "SyncReport",
    "SyncStatus",
]
