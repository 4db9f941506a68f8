"""
Unit tests for the reconciliation engine.
"""

from unittest.mock import MagicMock

import pytest

from catalog_builder.catalog import CatalogStore, EntityKind
from catalog_builder.storage.errors import GatewayError
from catalog_builder.storage.spaces import FolderResult, SpacesGateway
from catalog_builder.sync import FolderItem, ReconciliationEngine, SyncStatus


def _store():
    store = CatalogStore()
    store.add_group("Shelter")
    store.add_range("Peninsula")
    store.add_product(code="K301")
    store.link_range_to_group("shelter", "peninsula")
    store.link_product_to_range("peninsula", "k301")
    return store


def _gateway(folders=None):
    gateway = MagicMock()
    gateway.list_all_folders.return_value = list(folders or [])
    gateway.create_folder.side_effect = lambda path: FolderResult(
        path=path, success=True, created=True, message="Folder created successfully"
    )
    return gateway


def _remote_only(*paths):
    items = []
    for path in paths:
        depth = len(path.split("/"))
        items.append(
            FolderItem(path.split("/")[-1], EntityKind.from_depth(depth), SyncStatus.REMOTE_ONLY, path)
        )
    return items


class TestCompare:
    """Test classification of local and remote folders."""

    def test_case_insensitive_match_is_synced(self):
        engine = ReconciliationEngine(_store(), _gateway())

        report = engine.compare(["shelter", "shelter/peninsula", "shelter/peninsula/k301"])

        assert [item.status for item in report.all_items()] == [SyncStatus.SYNCED] * 3
        assert report.products[0].path == "Shelter/Peninsula/K301"
        assert report.summaries[EntityKind.PRODUCT].synced == 1

    def test_site_only_and_remote_only(self):
        engine = ReconciliationEngine(_store(), _gateway())

        report = engine.compare(["Shelter", "Canopy", "Canopy/Harbour"])

        groups = {item.name: item.status for item in report.groups}
        assert groups == {"Shelter": SyncStatus.SYNCED, "Canopy": SyncStatus.REMOTE_ONLY}
        assert report.ranges[0].status is SyncStatus.REMOTE_ONLY  # Canopy/Harbour
        assert report.ranges[1].status is SyncStatus.SITE_ONLY  # Shelter/Peninsula
        assert report.products[0].status is SyncStatus.SITE_ONLY

        summary = report.summaries[EntityKind.GROUP]
        assert (summary.total, summary.synced, summary.remote_only) == (2, 1, 1)

    def test_remote_case_variants_are_deduped(self):
        engine = ReconciliationEngine(CatalogStore(), _gateway())

        report = engine.compare(["NewCat", "newcat", "NEWCAT"])

        assert len(report.groups) == 1
        assert report.groups[0].path == "NewCat"

    def test_deep_and_empty_paths_are_ignored(self):
        engine = ReconciliationEngine(CatalogStore(), _gateway())

        report = engine.compare(["a/b/c/images", "a/b/c/images/x.jpg", "", "/"])

        assert report.groups == []
        assert report.ranges == []
        assert report.products == []

    def test_ungrouped_entities_have_no_path(self):
        store = _store()
        store.add_range("Loose Range")
        store.add_product(code="LOOSE1")
        engine = ReconciliationEngine(store, _gateway())

        report = engine.compare([])

        ungrouped = report.with_status(SyncStatus.UNGROUPED)
        assert {item.name for item in ungrouped} == {"Loose Range", "LOOSE1"}
        assert all(item.path is None for item in ungrouped)
        assert report.summaries[EntityKind.RANGE].ungrouped == 1

    def test_items_sorted_by_name(self):
        store = CatalogStore()
        store.add_group("beta")
        store.add_group("Alpha")
        engine = ReconciliationEngine(store, _gateway())

        report = engine.compare(["Gamma"])

        assert [item.name for item in report.groups] == ["Alpha", "beta", "Gamma"]

    def test_listing_failure_is_fail_open(self):
        gateway = _gateway()
        gateway.list_all_folders.side_effect = GatewayError("list_all_folders", "AccessDenied")
        engine = ReconciliationEngine(_store(), gateway)

        report = engine.compare()

        assert report.fetch_error == "list_all_folders failed: AccessDenied"
        assert [item.status for item in report.all_items()] == [SyncStatus.SITE_ONLY] * 3

    def test_compare_fetches_with_force_refresh(self):
        gateway = _gateway(["Shelter"])
        engine = ReconciliationEngine(_store(), gateway)

        engine.compare(force_refresh=True)

        gateway.list_all_folders.assert_called_once_with(force_refresh=True)


class TestPush:
    """Test creating remote folders for site-only items."""

    def test_push_creates_site_only_folders(self):
        gateway = _gateway()
        engine = ReconciliationEngine(_store(), gateway)
        report = engine.compare([])

        result = engine.push(report.with_status(SyncStatus.SITE_ONLY))

        assert result.success_count == 3
        assert result.errors == []
        created = [call.args[0] for call in gateway.create_folder.call_args_list]
        assert created == ["Shelter", "Shelter/Peninsula", "Shelter/Peninsula/K301"]

    def test_pushed_items_classify_as_synced(self):
        gateway = _gateway()
        engine = ReconciliationEngine(_store(), gateway)
        report = engine.compare([])
        engine.push(report.with_status(SyncStatus.SITE_ONLY))

        created = [call.args[0] for call in gateway.create_folder.call_args_list]
        after = engine.compare(created)

        assert all(item.status is SyncStatus.SYNCED for item in after.all_items())

    def test_push_skips_other_statuses(self):
        gateway = _gateway()
        engine = ReconciliationEngine(_store(), gateway)

        result = engine.push(_remote_only("Canopy"))

        assert result.skipped == 1
        gateway.create_folder.assert_not_called()

    def test_push_reports_failures_per_item(self):
        gateway = _gateway()
        gateway.create_folder.side_effect = [
            FolderResult(path="Shelter", success=True, created=True),
            FolderResult(path="Shelter/Peninsula", success=False, message="AccessDenied"),
            RuntimeError("connection reset"),
        ]
        engine = ReconciliationEngine(_store(), gateway)
        report = engine.compare([])

        result = engine.push(report.with_status(SyncStatus.SITE_ONLY))

        assert result.success_count == 1
        assert [error.path for error in result.errors] == ["Shelter/Peninsula", "Shelter/Peninsula/K301"]
        assert result.errors[1].error == "connection reset"


class TestImport:
    """Test creating store entities from remote-only folders."""

    def test_auto_provision_without_duplication(self):
        store = CatalogStore()
        engine = ReconciliationEngine(store, _gateway())

        result = engine.import_remote(
            _remote_only("NewCat/NewRange/NP001", "NewCat/NewRange/NP002")
        )

        assert result.success_count == 2
        assert store.counts() == {"groups": 1, "ranges": 1, "products": 2}
        assert store.group_to_ranges["newcat"] == ["newrange"]
        assert store.range_to_products["newrange"] == ["np001", "np002"]
        assert store.get_group("newcat").description == "Auto-created during import"
        assert store.get_group("newcat").icon == "lucide:folder"
        assert store.get_product("np001").description == "Imported from remote storage"

    def test_import_reuses_existing_ancestors_case_insensitively(self):
        store = _store()
        engine = ReconciliationEngine(store, _gateway())

        engine.import_remote(_remote_only("shelter/PENINSULA/K999"))

        assert store.counts() == {"groups": 1, "ranges": 1, "products": 2}
        assert store.range_to_products["peninsula"] == ["k301", "k999"]
        assert store.get_range("peninsula").name == "Peninsula"

    def test_case_variant_ancestors_in_one_batch(self):
        """Ancestors differing only by case within a batch are created once."""
        store = CatalogStore()
        engine = ReconciliationEngine(store, _gateway())

        result = engine.import_remote(_remote_only("NewCat/R1/P1", "newcat/R2/P2"))

        assert result.success_count == 2
        assert store.counts() == {"groups": 1, "ranges": 2, "products": 2}
        assert store.group_to_ranges["newcat"] == ["r1", "r2"]
        assert store.get_group("newcat").name == "NewCat"

    def test_known_group_gets_its_default_icon(self):
        store = CatalogStore()
        engine = ReconciliationEngine(store, _gateway())

        engine.import_remote(_remote_only("Shelter/Whyalla"))

        assert store.get_group("shelter").icon == "lucide:home"
        assert store.get_range("whyalla").tags == ["Robust", "Wind-resistant", "Durable"]
        assert store.get_range("whyalla").description == "Imported from remote storage"

    def test_import_orders_by_depth(self):
        store = CatalogStore()
        engine = ReconciliationEngine(store, _gateway())

        result = engine.import_remote(_remote_only("Canopy/Harbour/H1", "Canopy"))

        assert result.success_count == 2
        assert store.get_group("canopy").description == "Imported from remote storage"
        assert store.get_range("harbour").description == "Auto-created during import"

    def test_import_leaf_reused_is_linked_to_parent(self):
        store = _store()
        store.add_group("Canopy")
        engine = ReconciliationEngine(store, _gateway())

        engine.import_remote(_remote_only("Canopy/Peninsula"))

        assert store.group_to_ranges["canopy"] == ["peninsula"]
        assert store.counts()["ranges"] == 1

    def test_partial_failure_is_isolated(self, monkeypatch):
        store = CatalogStore()
        engine = ReconciliationEngine(store, _gateway())
        original_add_product = store.add_product
        calls = {"count": 0}

        def flaky_add_product(*args, **kwargs):
            calls["count"] += 1
            if calls["count"] == 2:
                raise RuntimeError("disk full")
            return original_add_product(*args, **kwargs)

        monkeypatch.setattr(store, "add_product", flaky_add_product)

        result = engine.import_remote(
            _remote_only("G/R/P1", "G/R/P2", "G/R/P3")
        )

        assert result.success_count == 2
        assert len(result.errors) == 1
        assert result.errors[0].path == "G/R/P2"
        assert result.errors[0].error == "disk full"
        assert store.range_to_products["r"] == ["p1", "p3"]

    def test_unusable_name_is_reported(self):
        store = CatalogStore()
        engine = ReconciliationEngine(store, _gateway())

        result = engine.import_remote(_remote_only("!!!"))

        assert result.success_count == 0
        assert result.errors[0].path == "!!!"
        assert store.groups() == []

    def test_import_skips_non_remote_only(self):
        store = _store()
        engine = ReconciliationEngine(store, _gateway())
        report = engine.compare([])

        result = engine.import_remote(report.all_items())

        assert result.skipped == 3
        assert result.success_count == 0


class TestPlanImport:
    """Test the import dry run."""

    def test_plan_matches_import_without_mutation(self):
        store = _store()
        engine = ReconciliationEngine(store, _gateway())
        items = _remote_only("Shelter/Peninsula/K999", "NewCat/NewRange/NP001", "NewCat/NewRange/NP002")

        plan = engine.plan_import(items)

        assert store.counts() == {"groups": 1, "ranges": 1, "products": 1}
        created = [(entity.kind, entity.name) for entity in plan.create]
        assert created == [
            (EntityKind.PRODUCT, "K999"),
            (EntityKind.GROUP, "NewCat"),
            (EntityKind.RANGE, "NewRange"),
            (EntityKind.PRODUCT, "NP001"),
            (EntityKind.PRODUCT, "NP002"),
        ]
        assert [entity.path for entity in plan.reuse] == ["Shelter", "Shelter/Peninsula"]
        assert ("NewCat", "NewCat/NewRange") in plan.links
        assert ("Shelter/Peninsula", "Shelter/Peninsula/K999") in plan.links
        assert ("Shelter", "Shelter/Peninsula") not in plan.links

    def test_plan_flags_unusable_names(self):
        engine = ReconciliationEngine(CatalogStore(), _gateway())

        plan = engine.plan_import(_remote_only("Good/???"))

        assert plan.create == []
        assert plan.invalid[0].path == "Good/???"


class TestAssets:
    """Test asset listing refresh and folder provisioning."""

    def test_refresh_assets_updates_gallery_and_files(self):
        store = _store()
        gateway = _gateway()
        gateway.fetch_objects_structured.return_value = {
            "Shelter": {
                "Peninsula": {
                    "K301": {
                        "images": [
                            {"filename": "a.jpg", "url": "https://cdn/a.jpg", "size": 10, "modified": None},
                        ],
                        "downloads": [
                            {"filename": "Brochure.pdf", "url": "https://cdn/Brochure.pdf", "size": 5, "modified": None},
                            {"filename": "Brochure.docx", "url": "https://cdn/Brochure.docx", "size": 5, "modified": None},
                        ],
                    },
                    "UNKNOWN": {"images": [], "downloads": []},
                }
            }
        }
        engine = ReconciliationEngine(store, gateway)

        result = engine.refresh_assets()

        product = store.get_product("k301")
        assert product.image_gallery == ["https://cdn/a.jpg"]
        assert product.files == {"Brochure": "https://cdn/Brochure.pdf"}
        assert result.success_count == 1
        assert result.skipped == 1

    def test_refresh_assets_unchanged_is_skipped(self):
        store = _store()
        store.update_product("k301", {"image_gallery": ["https://cdn/a.jpg"]})
        gateway = _gateway()
        gateway.fetch_objects_structured.return_value = {
            "Shelter": {"Peninsula": {"k301": {"images": [{"filename": "a.jpg", "url": "https://cdn/a.jpg"}], "downloads": []}}}
        }
        engine = ReconciliationEngine(store, gateway)

        result = engine.refresh_assets()

        assert result.success_count == 0
        assert result.skipped == 1

    def test_refresh_assets_listing_failure(self):
        gateway = _gateway()
        gateway.fetch_objects_structured.side_effect = GatewayError("fetch_objects_structured", "timeout")
        engine = ReconciliationEngine(_store(), gateway)

        result = engine.refresh_assets("Shelter/")

        assert result.success_count == 0
        assert result.errors[0].path == "Shelter/"

    def test_refresh_assets_unexpected_listing_error(self):
        gateway = _gateway()
        gateway.fetch_objects_structured.side_effect = KeyError("K301")
        engine = ReconciliationEngine(_store(), gateway)

        result = engine.refresh_assets()

        assert result.success_count == 0
        assert result.errors[0].path == "/"
        assert "K301" in result.errors[0].error

    def test_refresh_assets_tolerates_malformed_keys(self):
        """A real gateway listing with empty key segments still refreshes products."""
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = [
            {
                "Contents": [
                    {"Key": "Shelter//K301/images/stray.jpg", "Size": 1},
                    {"Key": "Shelter/Peninsula/K301/images/a.jpg", "Size": 1},
                ]
            }
        ]
        gateway = SpacesGateway(
            bucket_name="test-bucket", client=client, endpoint="https://nyc3.digitaloceanspaces.com"
        )
        store = _store()
        engine = ReconciliationEngine(store, gateway)

        result = engine.refresh_assets()

        assert result.errors == []
        assert result.success_count == 1
        assert store.get_product("k301").image_gallery == [
            "https://nyc3.digitaloceanspaces.com/test-bucket/Shelter/Peninsula/K301/images/a.jpg"
        ]

    def test_provision_asset_folders(self):
        store = _store()
        store.add_product(code="LOOSE1")
        gateway = _gateway()
        engine = ReconciliationEngine(store, gateway)

        result = engine.provision_asset_folders()

        created = [call.args[0] for call in gateway.create_folder.call_args_list]
        assert created == ["shelter/peninsula/k301/images", "shelter/peninsula/k301/downloads"]
        assert result.success_count == 2
        assert result.skipped == 1

    def test_provision_selected_products(self):
        gateway = _gateway()
        engine = ReconciliationEngine(_store(), gateway)

        result = engine.provision_asset_folders(["k301", "missing"])

        assert result.success_count == 2
        assert result.skipped == 1

    @pytest.mark.parametrize("message", ["AccessDenied", "SlowDown"])
    def test_provision_failure_is_reported(self, message):
        gateway = _gateway()
        gateway.create_folder.side_effect = lambda path: FolderResult(path=path, success=False, message=message)
        engine = ReconciliationEngine(_store(), gateway)

        result = engine.provision_asset_folders()

        assert result.success_count == 0
        assert [error.error for error in result.errors] == [message, message]
