"""Catalog system - product taxonomy store and path resolution."""

from .keys import NormalizedKeyMap, normalize_key, slugify
from .models import (
    DuplicateKind,
    EntityKind,
    OptionGroup,
    OptionValue,
    Product,
    ProductGroup,
    ProductRange,
)
from .store import CatalogStore
from .paths import AssetPaths, PathResolver, depth_of, sanitize, split_path

__all__ = [
    "NormalizedKeyMap",
    "normalize_key",
    "slugify",
    "DuplicateKind",
    "EntityKind",
    "OptionGroup",
    "OptionValue",
    "Product",
    "ProductGroup",
    "ProductRange",
    "CatalogStore",
    "AssetPaths",
    "PathResolver",
    "depth_of",
    "sanitize",
    "split_path",
]
