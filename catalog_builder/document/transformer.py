"""
Conversion between the catalog store and the six-step wizard document.

Steps 1-4 are derived from the store. Steps 5 (global options) and 6
(contact form fields) are not modelled as entities; they are carried from
the last imported document, with step 5 gaining the product-specific
options. The full entity state (icons, tags, images, active flags, options)
travels beside the steps under ``stepper_data_builder`` and is preferred
over the steps when a document is imported.
"""

import copy
from typing import Any, Dict, List, Optional

from catalog_builder.catalog.keys import slugify
from catalog_builder.catalog.models import OptionGroup
from catalog_builder.catalog.store import CatalogStore
from catalog_builder.document.schema import (
    BUILDER_STATE_KEY,
    PRODUCT_OPTIONS_KEY,
    UNGROUPED_RANGE_KEYS,
    get_steps,
    new_document,
)
from catalog_builder.utils.logging_utils import log_progress, log_warning


class DocumentTransformer:
    """
    Exports the store as a wizard document and rebuilds it from one.

    Args:
        store: Catalog store to read from and write into
    """

    def __init__(self, store: CatalogStore) -> None:
        self.store = store
        self.raw_document: Dict[str, Any] = new_document()

    def export_data(self) -> Dict[str, Any]:
        """
        Build the nested wizard document from the current store contents.

        Link entries whose target no longer resolves are filtered out.

        Returns:
            Dict shaped ``{"stepperForm": {"steps": [...]}}`` plus the
            ``stepper_data_builder`` entity state
        """
        store = self.store
        raw_steps = get_steps(self.raw_document)

        ranges: Dict[str, List[str]] = {}
        for group_id, range_ids in store.group_to_ranges.items():
            group = store.get_group(group_id)
            if group is None:
                continue
            ranges[group.name] = [
                store.get_range(range_id).name
                for range_id in range_ids
                if store.get_range(range_id) is not None
            ]

        products: Dict[str, List[str]] = {}
        for range_id, product_ids in store.range_to_products.items():
            product_range = store.get_range(range_id)
            if product_range is None:
                continue
            products[product_range.name] = [
                store.get_product(product_id).code
                for product_id in product_ids
                if store.get_product(product_id) is not None
            ]

        document: Dict[str, Any] = {
            "stepperForm": {
                "steps": [
                    {
                        "step": 1,
                        "title": raw_steps[0].get("title", "Select Product Group"),
                        "categories": [group.name for group in store.groups()],
                    },
                    {
                        "step": 2,
                        "title": raw_steps[1].get("title", "Select Product Range"),
                        "ranges": ranges,
                    },
                    {
                        "step": 3,
                        "title": raw_steps[2].get("title", "Select Individual Product"),
                        "products": products,
                    },
                    {
                        "step": 4,
                        "title": raw_steps[3].get("title", "View Product Content"),
                        "productDetails": {
                            product.code: product.to_details() for product in store.products()
                        },
                    },
                    self._options_step(raw_steps[4]),
                    copy.deepcopy(raw_steps[5]),
                ]
            }
        }
        document[BUILDER_STATE_KEY] = self.builder_state()
        if "id" in self.raw_document:
            document["id"] = self.raw_document["id"]
        return document

    def builder_state(self) -> Dict[str, Any]:
        """
        Serialize every entity and link table with all of its attributes.

        Returns:
            Dict with productGroups, productRanges, products and
            relationships (groupToRanges, rangeToProducts)
        """
        store = self.store
        return {
            "productGroups": [group.to_record() for group in store.groups()],
            "productRanges": [product_range.to_record() for product_range in store.ranges()],
            "products": [product.to_record() for product in store.products()],
            "relationships": {
                "groupToRanges": {
                    group_id: list(range_ids) for group_id, range_ids in store.group_to_ranges.items()
                },
                "rangeToProducts": {
                    range_id: list(product_ids)
                    for range_id, product_ids in store.range_to_products.items()
                },
            },
        }

    def import_data(self, document: Dict[str, Any]) -> None:
        """
        Replace the store contents with the catalog described by a document.

        A non-empty ``stepper_data_builder`` section is restored as is.
        Otherwise entities are created from steps 1-4 through the public
        store API in document order, so ids are derived exactly as
        ``add_*`` derives them. Products listed under an empty range key,
        or only present in ``productDetails``, are imported without a range.

        Args:
            document: Wizard document, wrapped or bare steps form
        """
        steps = get_steps(document)
        self.raw_document = copy.deepcopy(document) if isinstance(document, dict) else new_document()
        self.store.clear()

        builder = _as_dict(self.raw_document.get(BUILDER_STATE_KEY))
        if _as_list(builder.get("productGroups")):
            self._import_builder_state(builder)
            source = "entity state"
        else:
            self._import_steps(steps)
            source = "wizard steps"

        counts = self.store.counts()
        log_progress(
            "Document Import",
            f"Loaded {counts['groups']} groups, {counts['ranges']} ranges, "
            f"{counts['products']} products from {source}",
        )

    def option_catalog(self) -> List[OptionGroup]:
        """Global option groups carried in step 5 of the last imported document."""
        return OptionGroup.from_mapping(get_steps(self.raw_document)[4].get("options"))

    def _import_steps(self, steps: List[Dict[str, Any]]) -> None:
        store = self.store

        for name in _as_list(steps[0].get("categories")):
            store.add_group(name)

        for group_name, range_names in _as_dict(steps[1].get("ranges")).items():
            group_id = store.add_group(group_name)
            for range_name in _as_list(range_names):
                range_id = store.add_range(range_name)
                store.link_range_to_group(group_id, range_id)

        details = _as_dict(steps[3].get("productDetails"))

        for range_name, codes in _as_dict(steps[2].get("products")).items():
            range_id = None
            if range_name not in UNGROUPED_RANGE_KEYS:
                range_id = store.add_range(range_name)
            for code in _as_list(codes):
                product_id = self._add_product(code, details.get(code))
                if range_id:
                    store.link_product_to_range(range_id, product_id)

        for code, detail in details.items():
            self._add_product(code, detail)

        for code, options in _as_dict(steps[4].get(PRODUCT_OPTIONS_KEY)).items():
            product = store.find_product_by_code(code)
            if product is None:
                log_warning("Document Import", f"Options for unknown product {code!r} ignored")
                continue
            store.update_product(product.id, {"options": _as_dict(options)})

    def _import_builder_state(self, builder: Dict[str, Any]) -> None:
        store = self.store
        # Recorded id -> id derived by the store
        group_ids: Dict[str, str] = {}
        range_ids: Dict[str, str] = {}
        product_ids: Dict[str, str] = {}

        for record in _records(builder.get("productGroups")):
            name = str(record.get("name") or "")
            group_ids[str(record.get("id") or slugify(name))] = store.add_group(
                name,
                icon=record.get("icon") or None,
                description=record.get("description") or None,
                active=record.get("active") is not False,
            )

        for record in _records(builder.get("productRanges")):
            name = str(record.get("name") or "")
            tags = record.get("tags")
            range_ids[str(record.get("id") or slugify(name))] = store.add_range(
                name,
                image=record.get("image") or "",
                description=record.get("description") or None,
                tags=list(tags) if isinstance(tags, list) else None,
                active=record.get("active") is not False,
            )

        for record in _records(builder.get("products")):
            code = str(record.get("code") or "")
            options = record.get("options")
            product_ids[str(record.get("id") or slugify(code))] = store.add_product(
                code=code,
                name=record.get("name") or "",
                overview=record.get("overview") or "",
                description=record.get("description") or "",
                specifications=_as_list(record.get("specifications")),
                image_gallery=_as_list(record.get("imageGallery")),
                files=_as_dict(record.get("files")),
                options=OptionGroup.from_mapping(options) if isinstance(options, dict) else None,
                active=record.get("active") is not False,
            )

        relationships = _as_dict(builder.get("relationships"))
        for group_id, linked in _as_dict(relationships.get("groupToRanges")).items():
            for range_id in _as_list(linked):
                store.link_range_to_group(
                    group_ids.get(group_id, group_id), range_ids.get(range_id, range_id)
                )
        for range_id, linked in _as_dict(relationships.get("rangeToProducts")).items():
            for product_id in _as_list(linked):
                store.link_product_to_range(
                    range_ids.get(range_id, range_id), product_ids.get(product_id, product_id)
                )

    def _options_step(self, raw_step: Dict[str, Any]) -> Dict[str, Any]:
        """
        Step 5 with the product-specific options of the current store.

        Product option values are merged into the global option groups,
        skipping values already offered under the same group.
        """
        step = copy.deepcopy(raw_step)
        product_options = {
            product.code: OptionGroup.to_mapping(product.options)
            for product in self.store.products()
            if product.options
        }
        if not product_options:
            step.pop(PRODUCT_OPTIONS_KEY, None)
            return step

        step[PRODUCT_OPTIONS_KEY] = product_options
        global_options = step.get("options")
        if not isinstance(global_options, dict):
            global_options = step["options"] = {}
        for mapping in product_options.values():
            for group_name, values in mapping.items():
                merged = global_options.setdefault(group_name, [])
                if not isinstance(merged, list):
                    continue
                offered = {_option_value(value) for value in merged}
                for value in values:
                    if value["value"] not in offered:
                        merged.append(dict(value))
                        offered.add(value["value"])
        return step

    def _add_product(self, code: str, detail: Optional[Dict[str, Any]]) -> str:
        detail = detail if isinstance(detail, dict) else {}
        return self.store.add_product(
            code=code,
            name=detail.get("name") or f"{code} Product",
            overview=detail.get("overview", ""),
            description=detail.get("description", ""),
            specifications=_as_list(detail.get("specifications")),
            image_gallery=_as_list(detail.get("imageGallery")),
            files=_as_dict(detail.get("files")),
        )


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def _as_dict(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _records(value: Any) -> List[Dict[str, Any]]:
    return [record for record in _as_list(value) if isinstance(record, dict)]


def _option_value(value: Any) -> str:
    return str(value.get("value")) if isinstance(value, dict) else str(value)
