"""
Reconciliation between the catalog store and the remote folder tree.

The remote bucket mirrors the taxonomy as ``Group/Range/ProductCode``
folders. The engine classifies every local entity and remote folder at each
level, then applies operator-selected actions: push site-only folders to
storage, import remote-only folders into the store, pull asset listings into
product records and provision the per-product asset folders.

All name comparisons are case-insensitive. Batch actions isolate failures
per item and report them in an ActionResult; nothing is rolled back.
"""

import os
from typing import Dict, Iterable, List, Optional, Set, Tuple

from catalog_builder.catalog.defaults import known_group_icon
from catalog_builder.catalog.keys import NormalizedKeyMap, slugify
from catalog_builder.catalog.models import DuplicateKind, EntityKind, Product
from catalog_builder.catalog.paths import PathResolver, depth_of, split_path
from catalog_builder.catalog.store import CatalogStore
from catalog_builder.storage.errors import GatewayError
from catalog_builder.storage.spaces import SpacesGateway
from catalog_builder.sync.models import (
    ActionResult,
    FolderItem,
    ImportPlan,
    ItemError,
    LevelSummary,
    PlannedEntity,
    SyncReport,
    SyncStatus,
)
from catalog_builder.utils.logging_utils import (
    log_error,
    log_progress,
    log_section_complete,
    log_section_start,
    log_warning,
)

AUTO_CREATED_DESCRIPTION = "Auto-created during import"
IMPORTED_DESCRIPTION = "Imported from remote storage"
IMPORT_ICON = "lucide:folder"

MAX_DEPTH = EntityKind.PRODUCT.depth


class ReconciliationEngine:
    """
    Compares the store with remote storage and applies sync actions.

    Args:
        store: Catalog store, mutated by import and asset refresh
        gateway: Spaces gateway used for listing and folder creation
    """

    def __init__(self, store: CatalogStore, gateway: SpacesGateway) -> None:
        self.store = store
        self.gateway = gateway
        self.resolver = PathResolver(store)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def fetch_remote_folders(self, force_refresh: bool = False) -> Tuple[List[str], Optional[str]]:
        """
        List remote folders without letting a storage failure propagate.

        Returns:
            Tuple of (folder paths, error message or None). On failure the
            folder list is empty.
        """
        try:
            return self.gateway.list_all_folders(force_refresh=force_refresh), None
        except GatewayError as e:
            log_error("Remote Folder Listing", e)
            return [], str(e)

    def compare(
        self,
        remote_folders: Optional[Iterable[str]] = None,
        force_refresh: bool = False,
    ) -> SyncReport:
        """
        Classify every group, range and product against the remote listing.

        Args:
            remote_folders: Folder paths to compare against; fetched from the
                gateway when omitted
            force_refresh: Bypass the gateway's listing cache when fetching

        Returns:
            SyncReport with items sorted by name and per-level summaries
        """
        log_section_start("Folder Comparison")

        fetch_error = None
        if remote_folders is None:
            remote_folders, fetch_error = self.fetch_remote_folders(force_refresh)

        remote_by_depth: Dict[int, NormalizedKeyMap[str]] = {
            kind.depth: NormalizedKeyMap() for kind in EntityKind
        }
        ignored = 0
        for folder in remote_folders:
            segments = split_path(folder)
            if not 1 <= len(segments) <= MAX_DEPTH:
                ignored += 1
                continue
            path = "/".join(segments)
            remote_by_depth[len(segments)].add(path, path)

        report = SyncReport(fetch_error=fetch_error)
        for kind in EntityKind:
            items = self._classify_level(kind, remote_by_depth[kind.depth])
            report.items(kind).extend(items)
            report.summaries[kind] = LevelSummary.from_items(items)

        if ignored:
            log_progress("Folder Comparison", f"Ignored {ignored} folders deeper than {MAX_DEPTH} levels")

        log_section_complete(
            "Folder Comparison",
            ", ".join(
                f"{kind.value}s: {summary.synced} synced, {summary.site_only} site-only, "
                f"{summary.remote_only} remote-only"
                for kind, summary in report.summaries.items()
            ),
        )
        return report

    def _classify_level(self, kind: EntityKind, remote: NormalizedKeyMap[str]) -> List[FolderItem]:
        items: List[FolderItem] = []
        local: NormalizedKeyMap[str] = NormalizedKeyMap()

        for entity in self._entities(kind):
            name = entity.code if isinstance(entity, Product) else entity.name
            path = self.resolver.match_path(entity)
            if path is None:
                items.append(FolderItem(name, kind, SyncStatus.UNGROUPED, None, entity.id))
                continue
            if not local.add(path, entity.id):
                continue
            status = SyncStatus.SYNCED if path in remote else SyncStatus.SITE_ONLY
            items.append(FolderItem(name, kind, status, path, entity.id))

        for path, _ in remote.items():
            if path not in local:
                items.append(
                    FolderItem(split_path(path)[-1], kind, SyncStatus.REMOTE_ONLY, path)
                )

        items.sort(key=lambda item: item.name.casefold())
        return items

    def _entities(self, kind: EntityKind):
        if kind is EntityKind.GROUP:
            return self.store.groups()
        if kind is EntityKind.RANGE:
            return self.store.ranges()
        return self.store.products()

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def push(self, items: Iterable[FolderItem]) -> ActionResult:
        """
        Create remote folders for the selected site-only items.

        Items with any other status are counted as skipped. Creating a folder
        that already exists succeeds without changes.
        """
        log_section_start("Push Folders")
        result = ActionResult()

        for item in items:
            if item.status is not SyncStatus.SITE_ONLY or not item.path:
                result.skipped += 1
                continue
            try:
                outcome = self.gateway.create_folder(item.path)
            except Exception as e:
                log_error("Push Folders", f"{item.path}: {e}")
                result.errors.append(ItemError(item.path, str(e)))
                continue

            if outcome.success:
                result.success_count += 1
            else:
                result.errors.append(ItemError(item.path, outcome.message))

        log_section_complete(
            "Push Folders",
            f"{result.success_count} created, {result.failed_count} failed, {result.skipped} skipped",
        )
        return result

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def import_remote(self, items: Iterable[FolderItem]) -> ActionResult:
        """
        Create store entities for the selected remote-only folders.

        Items are applied shallowest first. For each path, ancestors are
        looked up by name (case-insensitive) or created, and the leaf is
        created or reused and linked to its parent. Name indexes are shared
        across the batch, so two products under a new range create the range
        once.
        """
        log_section_start("Import Folders")
        result = ActionResult()
        selected = self._select_remote_only(items, result)

        indexes = {kind: self.store.name_index(kind) for kind in EntityKind}
        for item in selected:
            try:
                self._import_path(split_path(item.path), indexes)
                result.success_count += 1
            except Exception as e:
                log_error("Import Folders", f"{item.path}: {e}")
                result.errors.append(ItemError(item.path, str(e)))

        log_section_complete(
            "Import Folders",
            f"{result.success_count} imported, {result.failed_count} failed, {result.skipped} skipped",
        )
        return result

    def plan_import(self, items: Iterable[FolderItem]) -> ImportPlan:
        """
        Describe what import_remote would do with the same selection,
        without touching the store.
        """
        plan = ImportPlan()
        counter = ActionResult()
        selected = self._select_remote_only(items, counter)
        plan.skipped = counter.skipped

        known = {kind: self.store.name_index(kind) for kind in EntityKind}
        planned_ids: Dict[EntityKind, Set[str]] = {kind: set() for kind in EntityKind}
        seen_reuse: Set[Tuple[EntityKind, str]] = set()
        links: Dict[Tuple[str, str], None] = {}

        for item in selected:
            segments = split_path(item.path)
            if any(not slugify(segment) for segment in segments):
                plan.invalid.append(ItemError(item.path, "Folder name has no usable characters"))
                continue

            parent_path = None
            for level, name in enumerate(segments, start=1):
                kind = EntityKind.from_depth(level)
                path = "/".join(segments[:level])
                is_leaf = level == len(segments)
                entity_id = slugify(name)

                exists = name in known[kind] or entity_id in planned_ids[kind]
                if not exists and self.store.check_duplicate(kind, name) is not DuplicateKind.NONE:
                    exists = True

                if exists:
                    key = (kind, entity_id)
                    if entity_id not in planned_ids[kind] and key not in seen_reuse:
                        seen_reuse.add(key)
                        plan.reuse.append(PlannedEntity(kind, name, path))
                else:
                    plan.create.append(PlannedEntity(kind, name, path))
                    known[kind].add(name, entity_id)
                    planned_ids[kind].add(entity_id)

                if parent_path and (not exists or is_leaf):
                    links.setdefault((parent_path, path), None)
                parent_path = path

        plan.links = list(links)
        return plan

    def _select_remote_only(self, items: Iterable[FolderItem], result: ActionResult) -> List[FolderItem]:
        selected = []
        for item in items:
            if item.status is not SyncStatus.REMOTE_ONLY or not item.path:
                result.skipped += 1
                continue
            if not 1 <= depth_of(item.path) <= MAX_DEPTH:
                result.skipped += 1
                continue
            selected.append(item)
        # sorted() is stable, so items at the same depth keep their order
        return sorted(selected, key=lambda item: depth_of(item.path))

    def _import_path(
        self, segments: List[str], indexes: Dict[EntityKind, NormalizedKeyMap[str]]
    ) -> None:
        parent_id: Optional[str] = None
        depth = len(segments)

        for level, name in enumerate(segments, start=1):
            kind = EntityKind.from_depth(level)
            is_leaf = level == depth

            entity_id = indexes[kind].get(name)
            created = False
            if entity_id is None or not self._exists(kind, entity_id):
                description = IMPORTED_DESCRIPTION if is_leaf else AUTO_CREATED_DESCRIPTION
                entity_id = self._create(kind, name, description)
                if not entity_id:
                    raise ValueError(f"Folder name {name!r} has no usable characters")
                indexes[kind].add(name, entity_id)
                created = True

            if parent_id and (created or is_leaf):
                self._link(kind, parent_id, entity_id)
            parent_id = entity_id

    def _exists(self, kind: EntityKind, entity_id: str) -> bool:
        if kind is EntityKind.GROUP:
            return self.store.get_group(entity_id) is not None
        if kind is EntityKind.RANGE:
            return self.store.get_range(entity_id) is not None
        return self.store.get_product(entity_id) is not None

    def _create(self, kind: EntityKind, name: str, description: str) -> str:
        if kind is EntityKind.GROUP:
            icon = known_group_icon(name) or IMPORT_ICON
            return self.store.add_group(name, icon=icon, description=description)
        if kind is EntityKind.RANGE:
            return self.store.add_range(name, description=description)
        return self.store.add_product(code=name, name=name, description=description)

    def _link(self, kind: EntityKind, parent_id: str, child_id: str) -> None:
        if kind is EntityKind.RANGE:
            self.store.link_range_to_group(parent_id, child_id)
        elif kind is EntityKind.PRODUCT:
            self.store.link_product_to_range(parent_id, child_id)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def refresh_assets(self, prefix: str = "") -> ActionResult:
        """
        Pull image and download listings from storage into product records.

        Images become the product's image gallery; downloads become its
        files map keyed by filename without extension (first file wins on a
        clash). A field is only replaced when storage holds at least one
        file of that type and the listing differs from the stored value.
        Folders whose code matches no product are skipped.
        """
        log_section_start("Asset Refresh")
        result = ActionResult()

        try:
            structured = self.gateway.fetch_objects_structured(prefix)
        except Exception as e:
            log_error("Asset Refresh", e)
            result.errors.append(ItemError(prefix or "/", str(e)))
            return result

        products = self.store.name_index(EntityKind.PRODUCT)
        for group_name, ranges in structured.items():
            for range_name, codes in ranges.items():
                for code, assets in codes.items():
                    path = f"{group_name}/{range_name}/{code}"
                    product_id = products.get(code)
                    if product_id is None:
                        result.skipped += 1
                        continue
                    try:
                        changed = self._apply_assets(product_id, assets)
                    except Exception as e:
                        log_error("Asset Refresh", f"{path}: {e}")
                        result.errors.append(ItemError(path, str(e)))
                        continue
                    if changed:
                        result.success_count += 1
                    else:
                        result.skipped += 1

        log_section_complete(
            "Asset Refresh",
            f"{result.success_count} products updated, {result.failed_count} failed, {result.skipped} unchanged",
        )
        return result

    def _apply_assets(self, product_id: str, assets: Dict[str, List[Dict]]) -> bool:
        product = self.store.get_product(product_id)
        patch = {}

        gallery = [info["url"] for info in assets.get("images", [])]
        if gallery and gallery != product.image_gallery:
            patch["image_gallery"] = gallery

        files: Dict[str, str] = {}
        for info in assets.get("downloads", []):
            label = os.path.splitext(info["filename"])[0] or info["filename"]
            if label in files:
                log_warning("Asset Refresh", f"{product.code}: duplicate download label {label!r}")
                continue
            files[label] = info["url"]
        if files and files != product.files:
            patch["files"] = files

        if patch:
            self.store.update_product(product_id, patch)
        return bool(patch)

    def provision_asset_folders(self, product_ids: Optional[Iterable[str]] = None) -> ActionResult:
        """
        Create the images and downloads folders for each product.

        Args:
            product_ids: Products to provision, all products when omitted

        Returns:
            ActionResult counting folders; ungrouped or unknown products are skipped
        """
        log_section_start("Asset Folder Provisioning")
        result = ActionResult()

        if product_ids is None:
            products = self.store.products()
        else:
            products = []
            for product_id in product_ids:
                product = self.store.get_product(product_id)
                if product is None:
                    result.skipped += 1
                else:
                    products.append(product)

        for product in products:
            paths = self.resolver.asset_paths(product)
            if paths is None:
                result.skipped += 1
                continue
            for folder in (paths.images, paths.downloads):
                try:
                    outcome = self.gateway.create_folder(folder)
                except Exception as e:
                    log_error("Asset Folder Provisioning", f"{folder}: {e}")
                    result.errors.append(ItemError(folder, str(e)))
                    continue
                if outcome.success:
                    result.success_count += 1
                else:
                    result.errors.append(ItemError(folder, outcome.message))

        log_section_complete(
            "Asset Folder Provisioning",
            f"{result.success_count} folders ready, {result.failed_count} failed, {result.skipped} skipped",
        )
        return result
