"""
Tabular rendering of comparison results for the command line.
"""

import pandas as pd

from catalog_builder.sync.models import SyncReport

COMPARISON_COLUMNS = ["level", "name", "status", "path", "entity_id"]
SUMMARY_COLUMNS = ["total", "synced", "site_only", "remote_only", "ungrouped"]


def comparison_frame(report: SyncReport) -> pd.DataFrame:
    """
    One row per compared folder, grouped by level in taxonomy order.

    Args:
        report: Result of ReconciliationEngine.compare

    Returns:
        DataFrame with columns level, name, status, path, entity_id
    """
    rows = [
        {
            "level": item.kind.value,
            "name": item.name,
            "status": item.status.value,
            "path": item.path,
            "entity_id": item.entity_id,
        }
        for item in report.all_items()
    ]
    return pd.DataFrame(rows, columns=COMPARISON_COLUMNS)


def summary_frame(report: SyncReport) -> pd.DataFrame:
    """Per-level counts indexed by level name."""
    df = pd.DataFrame(
        [summary.to_dict() for summary in report.summaries.values()],
        index=[kind.value for kind in report.summaries],
        columns=SUMMARY_COLUMNS,
    )
    df.index.name = "level"
    return df
