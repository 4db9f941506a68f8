"""
In-memory catalog store.

Holds product groups, ranges and products keyed by their slug ids, plus the
ordered group→ranges and range→products link tables. Every mutation is
applied synchronously and in full. Operations on ids that do not exist are
silent no-ops so callers never have to guard against a stale selection.
"""

from dataclasses import fields
from typing import Any, Dict, List, Mapping, Optional

from catalog_builder.catalog import defaults
from catalog_builder.catalog.keys import NormalizedKeyMap, normalize_key, slugify
from catalog_builder.catalog.models import (
    DuplicateKind,
    EntityKind,
    OptionGroup,
    Product,
    ProductGroup,
    ProductRange,
    WIRE_FIELD_NAMES,
)
from catalog_builder.utils.logging_utils import log_warning

_SECTION = "Catalog Store"


class CatalogStore:
    """
    Repository of the Group → Range → Product taxonomy.

    The store is an explicit object: the document transformer and the
    reconciliation engine receive it as a constructor argument.
    """

    def __init__(self) -> None:
        self._groups: Dict[str, ProductGroup] = {}
        self._ranges: Dict[str, ProductRange] = {}
        self._products: Dict[str, Product] = {}
        self.group_to_ranges: Dict[str, List[str]] = {}
        self.range_to_products: Dict[str, List[str]] = {}

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def groups(self) -> List[ProductGroup]:
        return list(self._groups.values())

    def ranges(self) -> List[ProductRange]:
        return list(self._ranges.values())

    def products(self) -> List[Product]:
        return list(self._products.values())

    def get_group(self, group_id: str) -> Optional[ProductGroup]:
        return self._groups.get(group_id)

    def get_range(self, range_id: str) -> Optional[ProductRange]:
        return self._ranges.get(range_id)

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def ranges_for_group(self, group_id: str) -> List[ProductRange]:
        """Ranges linked to a group, in link order."""
        return [
            self._ranges[range_id]
            for range_id in self.group_to_ranges.get(group_id, [])
            if range_id in self._ranges
        ]

    def products_for_range(self, range_id: str) -> List[Product]:
        """Products linked to a range, in link order."""
        return [
            self._products[product_id]
            for product_id in self.range_to_products.get(range_id, [])
            if product_id in self._products
        ]

    def groups_for_range(self, range_id: str) -> List[ProductGroup]:
        return [
            self._groups[group_id]
            for group_id, range_ids in self.group_to_ranges.items()
            if range_id in range_ids and group_id in self._groups
        ]

    def ranges_for_product(self, product_id: str) -> List[ProductRange]:
        return [
            self._ranges[range_id]
            for range_id, product_ids in self.range_to_products.items()
            if product_id in product_ids and range_id in self._ranges
        ]

    def parent_group_of(self, range_id: str) -> Optional[ProductGroup]:
        """First group whose link list contains the range, or None if ungrouped."""
        parents = self.groups_for_range(range_id)
        return parents[0] if parents else None

    def parent_range_of(self, product_id: str) -> Optional[ProductRange]:
        """First range whose link list contains the product, or None if ungrouped."""
        parents = self.ranges_for_product(product_id)
        return parents[0] if parents else None

    def find_group_by_name(self, name: str) -> Optional[ProductGroup]:
        return _first_by_name(self._groups.values(), name, "name")

    def find_range_by_name(self, name: str) -> Optional[ProductRange]:
        return _first_by_name(self._ranges.values(), name, "name")

    def find_product_by_code(self, code: str) -> Optional[Product]:
        return _first_by_name(self._products.values(), code, "code")

    def name_index(self, kind: EntityKind) -> NormalizedKeyMap[str]:
        """
        Build a case-insensitive name → id index for one level.

        Products are indexed by code. When two entities share a name
        ignoring case, the one created first wins.
        """
        index: NormalizedKeyMap[str] = NormalizedKeyMap()
        if kind is EntityKind.GROUP:
            for group in self._groups.values():
                index.add(group.name, group.id)
        elif kind is EntityKind.RANGE:
            for product_range in self._ranges.values():
                index.add(product_range.name, product_range.id)
        else:
            for product in self._products.values():
                index.add(product.code, product.id)
        return index

    def counts(self) -> Dict[str, int]:
        return {
            "groups": len(self._groups),
            "ranges": len(self._ranges),
            "products": len(self._products),
        }

    def check_duplicate(self, kind: EntityKind, name: str) -> DuplicateKind:
        """
        Report whether adding ``name`` at ``kind`` would collide with an entity.

        Args:
            kind: Taxonomy level to check
            name: Group/range name or product code

        Returns:
            DuplicateKind.SAME_NAME if an entity with exactly this name exists,
            DuplicateKind.SLUG_COLLISION if a differently named entity derives
            the same id, DuplicateKind.NONE otherwise
        """
        entity_id = slugify(name)
        if kind is EntityKind.GROUP:
            existing = self._groups.get(entity_id)
            existing_name = existing.name if existing else None
        elif kind is EntityKind.RANGE:
            existing = self._ranges.get(entity_id)
            existing_name = existing.name if existing else None
        else:
            existing = self._products.get(entity_id)
            existing_name = existing.code if existing else None

        if existing_name is None:
            return DuplicateKind.NONE
        if existing_name == name:
            return DuplicateKind.SAME_NAME
        return DuplicateKind.SLUG_COLLISION

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def add_group(
        self,
        name: str,
        icon: Optional[str] = None,
        description: Optional[str] = None,
        active: bool = True,
    ) -> str:
        """
        Add a product group unless one with the same derived id exists.

        Args:
            name: Display name, also the source of the id
            icon: Icon identifier, defaults to the per-name icon or a box
            description: Short description, defaults to the per-name text
            active: Whether the group is offered in the wizard

        Returns:
            str: The group id (the existing one on a duplicate, "" if the
            name has no usable characters)
        """
        group_id = slugify(name)
        if not group_id:
            log_warning(_SECTION, f"Ignoring group with unusable name {name!r}")
            return ""

        if group_id in self._groups:
            self._warn_if_collision(EntityKind.GROUP, self._groups[group_id].name, name)
            return group_id

        self._groups[group_id] = ProductGroup(
            id=group_id,
            name=name,
            icon=icon or defaults.group_icon(name),
            description=description or defaults.group_description(name),
            active=active,
        )
        self.group_to_ranges.setdefault(group_id, [])
        return group_id

    def update_group(self, group_id: str, patch: Mapping[str, Any]) -> None:
        group = self._groups.get(group_id)
        if group is not None:
            _apply_patch(group, patch)

    def remove_group(self, group_id: str) -> None:
        """
        Remove a group and everything reachable only through it.

        Ranges still linked from another group survive, as do products still
        linked from a surviving range.
        """
        if group_id not in self._groups and group_id not in self.group_to_ranges:
            return

        self._groups.pop(group_id, None)
        range_ids = self.group_to_ranges.pop(group_id, [])

        for range_id in range_ids:
            if self._has_other_group(range_id):
                continue
            self._drop_range(range_id)

    # ------------------------------------------------------------------
    # Ranges
    # ------------------------------------------------------------------

    def add_range(
        self,
        name: str,
        image: str = "",
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        active: bool = True,
    ) -> str:
        """
        Add a product range unless one with the same derived id exists.

        A new range is not linked to any group; use link_range_to_group.
        Missing descriptions and tags come from the per-name defaults; an
        explicit empty tag list is kept.

        Returns:
            str: The range id ("" if the name has no usable characters)
        """
        range_id = slugify(name)
        if not range_id:
            log_warning(_SECTION, f"Ignoring range with unusable name {name!r}")
            return ""

        if range_id in self._ranges:
            self._warn_if_collision(EntityKind.RANGE, self._ranges[range_id].name, name)
            return range_id

        self._ranges[range_id] = ProductRange(
            id=range_id,
            name=name,
            image=image or "",
            description=description or defaults.range_description(name),
            tags=list(tags) if tags is not None else defaults.range_tags(name),
            active=active,
        )
        self.range_to_products.setdefault(range_id, [])
        return range_id

    def update_range(self, range_id: str, patch: Mapping[str, Any]) -> None:
        product_range = self._ranges.get(range_id)
        if product_range is not None:
            _apply_patch(product_range, patch)

    def remove_range(self, range_id: str) -> None:
        """
        Remove a range, detach it from every group and drop the products
        that are not linked from any other range.
        """
        if range_id not in self._ranges and range_id not in self.range_to_products:
            return

        for range_ids in self.group_to_ranges.values():
            if range_id in range_ids:
                range_ids[:] = [rid for rid in range_ids if rid != range_id]

        self._drop_range(range_id)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def add_product(
        self,
        code: str = "",
        name: str = "",
        overview: str = "",
        description: str = "",
        specifications: Optional[List[str]] = None,
        image_gallery: Optional[List[str]] = None,
        files: Optional[Dict[str, str]] = None,
        options: Optional[List[OptionGroup]] = None,
        active: bool = True,
    ) -> str:
        """
        Add a product unless one with the same derived id exists.

        The id comes from the code, or from the name when no code is given;
        in that case the code becomes the slug of the name.

        Returns:
            str: The product id ("" if neither code nor name is usable)
        """
        product_id = slugify(code or name)
        if not product_id:
            log_warning(_SECTION, f"Ignoring product with unusable code {code!r}")
            return ""

        product_code = code or product_id
        if product_id in self._products:
            self._warn_if_collision(
                EntityKind.PRODUCT, self._products[product_id].code, product_code
            )
            return product_id

        self._products[product_id] = Product(
            id=product_id,
            code=product_code,
            name=name or product_code,
            overview=overview or "",
            description=description or "",
            specifications=list(specifications or []),
            image_gallery=list(image_gallery or []),
            files=dict(files or {}),
            options=list(options) if options is not None else None,
            active=active,
        )
        return product_id

    def update_product(self, product_id: str, patch: Mapping[str, Any]) -> None:
        product = self._products.get(product_id)
        if product is not None:
            _apply_patch(product, patch)

    def remove_product(self, product_id: str) -> None:
        """Remove a product and detach it from every range. No further cascade."""
        self._products.pop(product_id, None)
        for product_ids in self.range_to_products.values():
            if product_id in product_ids:
                product_ids[:] = [pid for pid in product_ids if pid != product_id]

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def link_range_to_group(self, group_id: str, range_id: str) -> None:
        if group_id not in self._groups or range_id not in self._ranges:
            return
        range_ids = self.group_to_ranges.setdefault(group_id, [])
        if range_id not in range_ids:
            range_ids.append(range_id)

    def unlink_range_from_group(self, group_id: str, range_id: str) -> None:
        if group_id in self.group_to_ranges:
            self.group_to_ranges[group_id] = [
                rid for rid in self.group_to_ranges[group_id] if rid != range_id
            ]

    def link_product_to_range(self, range_id: str, product_id: str) -> None:
        if range_id not in self._ranges or product_id not in self._products:
            return
        product_ids = self.range_to_products.setdefault(range_id, [])
        if product_id not in product_ids:
            product_ids.append(product_id)

    def unlink_product_from_range(self, range_id: str, product_id: str) -> None:
        if range_id in self.range_to_products:
            self.range_to_products[range_id] = [
                pid for pid in self.range_to_products[range_id] if pid != product_id
            ]

    def clear(self) -> None:
        """Drop every entity and link."""
        self._groups.clear()
        self._ranges.clear()
        self._products.clear()
        self.group_to_ranges.clear()
        self.range_to_products.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _has_other_group(self, range_id: str) -> bool:
        return any(range_id in range_ids for range_ids in self.group_to_ranges.values())

    def _has_other_range(self, product_id: str) -> bool:
        return any(
            product_id in product_ids for product_ids in self.range_to_products.values()
        )

    def _drop_range(self, range_id: str) -> None:
        self._ranges.pop(range_id, None)
        product_ids = self.range_to_products.pop(range_id, [])
        for product_id in product_ids:
            if not self._has_other_range(product_id):
                self._products.pop(product_id, None)

    def _warn_if_collision(self, kind: EntityKind, existing: str, requested: str) -> None:
        if existing != requested:
            log_warning(
                _SECTION,
                f"{kind.value} {requested!r} collides with existing {existing!r}; keeping the existing one",
            )


def _first_by_name(entities, name: str, attribute: str):
    wanted = normalize_key(name)
    for entity in entities:
        if normalize_key(getattr(entity, attribute)) == wanted:
            return entity
    return None


def _apply_patch(entity: Any, patch: Mapping[str, Any]) -> None:
    """Copy known fields from a partial update onto an entity; the id never changes."""
    allowed = {f.name for f in fields(entity)} - {"id"}
    for key, value in patch.items():
        attribute = WIRE_FIELD_NAMES.get(key, key)
        if attribute == "id":
            continue
        if attribute not in allowed:
            log_warning(_SECTION, f"Ignoring unknown field {key!r} on {entity.id!r}")
            continue
        if attribute == "options" and isinstance(value, Mapping):
            value = OptionGroup.from_mapping(value)
        setattr(entity, attribute, value)
