"""
AWS Lambda handler and command-line entry point for catalog folder sync.

Loads the wizard document, rebuilds the catalog store from it, runs one
reconciliation action against the Spaces bucket and saves the document
back when the action changed the catalog.

Event shape::

    {
        "action": "status" | "push" | "import" | "refresh_assets" | "provision",
        "paths": ["Shelter/Peninsula"],   # optional selection for push/import
        "force_refresh": false,           # bypass the folder listing cache
        "dry_run": false,                 # import only: return the plan
        "prefix": "",                     # refresh_assets only
        "product_ids": ["k301"]           # provision only
    }
"""

import argparse
import json
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from catalog_builder.catalog.keys import NormalizedKeyMap
from catalog_builder.catalog.store import CatalogStore
from catalog_builder.config import Config
from catalog_builder.document.schema import BUILDER_STATE_KEY
from catalog_builder.document.transformer import DocumentTransformer
from catalog_builder.storage.documents import get_document_store
from catalog_builder.storage.spaces import SpacesGateway
from catalog_builder.sync.engine import ReconciliationEngine
from catalog_builder.sync.models import FolderItem, SyncReport, SyncStatus
from catalog_builder.sync.report import comparison_frame, summary_frame
from catalog_builder.utils.logging_utils import (
    log_error,
    log_progress,
    log_section_complete,
    log_section_start,
)

ACTIONS = ("status", "push", "import", "refresh_assets", "provision")


class InvalidRequest(ValueError):
    """The event asks for something the handler cannot do."""


def select_items(
    report: SyncReport, status: SyncStatus, paths: Optional[List[str]] = None
) -> List[FolderItem]:
    """
    Pick the report items with a given status, optionally limited to paths.

    Args:
        report: Comparison to select from
        status: Status the items must have
        paths: Folder paths to keep (case-insensitive); all items when None

    Returns:
        Matching items in report order
    """
    candidates = report.with_status(status)
    if paths is None:
        return candidates

    wanted: NormalizedKeyMap[bool] = NormalizedKeyMap()
    for path in paths:
        wanted.add(str(path).strip("/"), True)
    return [item for item in candidates if item.path and item.path in wanted]


def run_action(engine: ReconciliationEngine, action: str, event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute one sync action.

    Args:
        engine: Engine bound to the loaded store and the gateway
        action: One of ACTIONS
        event: Lambda event carrying the action parameters

    Returns:
        JSON-serialisable result body

    Raises:
        InvalidRequest: If the action or its parameters are invalid
    """
    paths = event.get("paths")
    if paths is not None and not isinstance(paths, list):
        raise InvalidRequest("paths must be a list of folder paths")
    force_refresh = bool(event.get("force_refresh", False))

    if action == "status":
        report = engine.compare(force_refresh=force_refresh)
        return {"report": report.to_dict()}

    if action == "push":
        report = engine.compare(force_refresh=force_refresh)
        result = engine.push(select_items(report, SyncStatus.SITE_ONLY, paths))
        return {"result": result.to_dict(), "fetch_error": report.fetch_error}

    if action == "import":
        report = engine.compare(force_refresh=force_refresh)
        items = select_items(report, SyncStatus.REMOTE_ONLY, paths)
        if event.get("dry_run"):
            return {"plan": engine.plan_import(items).to_dict(), "fetch_error": report.fetch_error}
        result = engine.import_remote(items)
        return {"result": result.to_dict(), "fetch_error": report.fetch_error}

    if action == "refresh_assets":
        result = engine.refresh_assets(prefix=str(event.get("prefix") or ""))
        return {"result": result.to_dict()}

    if action == "provision":
        product_ids = event.get("product_ids")
        if product_ids is not None and not isinstance(product_ids, list):
            raise InvalidRequest("product_ids must be a list of product ids")
        result = engine.provision_asset_folders(product_ids)
        return {"result": result.to_dict()}

    raise InvalidRequest(f"Unknown action {action!r}, expected one of {', '.join(ACTIONS)}")


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {"statusCode": status_code, "body": json.dumps(body, default=str)}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for catalog folder sync.

    Args:
        event: Lambda event, see module docstring
        context: Lambda context object

    Returns:
        Dict with statusCode 200, 400 (bad request) or 500 (failure) and a
        JSON body
    """
    run_timestamp = datetime.now(UTC)
    event = event or {}
    action = str(event.get("action", "status")).lower()

    try:
        if action not in ACTIONS:
            raise InvalidRequest(
                f"Unknown action {action!r}, expected one of {', '.join(ACTIONS)}"
            )

        log_section_start("Configuration Validation")
        Config.validate()
        log_section_complete("Configuration Validation")

        log_section_start(f"Catalog Sync - {action}")
        document_store = get_document_store()
        store = CatalogStore()
        transformer = DocumentTransformer(store)
        transformer.import_data(document_store.load())
        before = transformer.export_data()

        engine = ReconciliationEngine(store, SpacesGateway())
        body = run_action(engine, action, event)

        after = transformer.export_data()
        body["saved"] = False
        if after != before:
            after[BUILDER_STATE_KEY]["lastSaved"] = run_timestamp.isoformat()
            ack = document_store.save(after)
            body["saved"] = ack.success
            log_progress(f"Catalog Sync - {action}", f"Saved updated document to {ack.location}")

        body.update({"action": action, "run_timestamp": run_timestamp.isoformat()})
        log_section_complete(f"Catalog Sync - {action}")
        return _response(200, body)

    except InvalidRequest as e:
        log_error("Catalog Sync", str(e))
        return _response(
            400, {"error": str(e), "action": action, "run_timestamp": run_timestamp.isoformat()}
        )
    except Exception as e:
        log_error("Catalog Sync", str(e))
        return _response(
            500, {"error": str(e), "action": action, "run_timestamp": run_timestamp.isoformat()}
        )


def main():
    """
    Parse CLI arguments and run one sync action locally.
    """
    parser = argparse.ArgumentParser(description="Sync the product catalog with Spaces folders")
    parser.add_argument("action", nargs="?", default="status", choices=ACTIONS)
    parser.add_argument(
        "--path", action="append", dest="paths", help="Folder path to act on (repeatable)"
    )
    parser.add_argument(
        "--force-refresh", action="store_true", help="Ignore the cached folder listing"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Show what an import would create"
    )
    parser.add_argument("--prefix", default="", help="Key prefix for refresh_assets")
    args = parser.parse_args()

    event = {
        "action": args.action,
        "paths": args.paths,
        "force_refresh": args.force_refresh,
        "dry_run": args.dry_run,
        "prefix": args.prefix,
    }
    response = lambda_handler(event, None)
    body = json.loads(response["body"])

    if response["statusCode"] == 200 and args.action == "status":
        report = SyncReport.from_dict(body["report"])
        print(summary_frame(report).to_string())
        print()
        print(comparison_frame(report).to_string(index=False))
    else:
        print(json.dumps(body, indent=2))


if __name__ == "__main__":
    main()
