"""
Storage path resolution for catalog entities.

Two flavours of path are produced from an entity's ancestor chain:

- the canonical path, built from sanitized segments, used when provisioning
  asset folders (``shelter/peninsula/k301/images``);
- the match path, built from the raw names and codes, which is what the
  reconciliation engine compares case-insensitively against folder names
  typed by operators (``Shelter/Peninsula/K301``).
"""

from dataclasses import dataclass
from typing import List, Optional, Union

from catalog_builder.catalog.keys import slugify
from catalog_builder.catalog.models import Product, ProductGroup, ProductRange
from catalog_builder.catalog.store import CatalogStore

CatalogEntity = Union[ProductGroup, ProductRange, Product]

IMAGES_FOLDER = "images"
DOWNLOADS_FOLDER = "downloads"


def sanitize(segment: str) -> str:
    """Sanitize one path segment (same rule as entity ids)."""
    return slugify(segment)


def split_path(path: str) -> List[str]:
    """Split a folder path into its non-empty segments."""
    return [segment for segment in (path or "").split("/") if segment.strip()]


def depth_of(path: str) -> int:
    return len(split_path(path))


@dataclass(frozen=True, slots=True)
class AssetPaths:
    images: str
    downloads: str


class PathResolver:
    """Resolves entity ancestor chains through the store's link tables."""

    def __init__(self, store: CatalogStore) -> None:
        self.store = store

    def chain(self, entity: CatalogEntity) -> Optional[List[str]]:
        """
        Raw name segments from the root group down to the entity.

        Args:
            entity: A group, range or product held by the store

        Returns:
            List of names (codes for products), or None when an ancestor
            cannot be resolved
        """
        if isinstance(entity, ProductGroup):
            return [entity.name]

        if isinstance(entity, ProductRange):
            group = self.store.parent_group_of(entity.id)
            if group is None:
                return None
            return [group.name, entity.name]

        product_range = self.store.parent_range_of(entity.id)
        if product_range is None:
            return None
        range_chain = self.chain(product_range)
        if range_chain is None:
            return None
        return range_chain + [entity.code]

    def match_path(self, entity: CatalogEntity) -> Optional[str]:
        segments = self.chain(entity)
        return "/".join(segments) if segments is not None else None

    def canonical_path(self, entity: CatalogEntity) -> Optional[str]:
        segments = self.chain(entity)
        if segments is None:
            return None
        return "/".join(sanitize(segment) for segment in segments)

    def asset_paths(self, product: Product) -> Optional[AssetPaths]:
        """Images and downloads folders under the product's canonical path."""
        base = self.canonical_path(product)
        if base is None:
            return None
        return AssetPaths(
            images=f"{base}/{IMAGES_FOLDER}",
            downloads=f"{base}/{DOWNLOADS_FOLDER}",
        )
