"""
Catalog entity types: product groups, ranges, products and their options.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class EntityKind(str, Enum):
    """The three levels of the product taxonomy, parent first."""

    GROUP = "group"
    RANGE = "range"
    PRODUCT = "product"

    @property
    def depth(self) -> int:
        return _DEPTHS[self]

    @classmethod
    def from_depth(cls, depth: int) -> "EntityKind":
        for kind, kind_depth in _DEPTHS.items():
            if kind_depth == depth:
                return kind
        raise ValueError(f"No catalog level at depth {depth}")


_DEPTHS = {EntityKind.GROUP: 1, EntityKind.RANGE: 2, EntityKind.PRODUCT: 3}


class DuplicateKind(str, Enum):
    """How a name relates to the entities already in the store."""

    NONE = "none"
    SAME_NAME = "same_name"  # identical name/code already stored
    SLUG_COLLISION = "slug_collision"  # different name, same derived id


@dataclass(slots=True)
class OptionValue:
    value: str
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {"value": self.value}
        if self.image_url:
            data["imageUrl"] = self.image_url
        return data


@dataclass(slots=True)
class OptionGroup:
    """
    A named group of selectable option values, e.g. "Roof Colour".

    On the wire options are a map of group name to a list of
    ``{value, imageUrl?}`` records; plain strings are accepted as values.
    """

    name: str
    options: List[OptionValue] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> List["OptionGroup"]:
        """
        Parse the wire form into option groups, preserving order.

        Args:
            data: Map of group name to a list of values or value records

        Returns:
            List of OptionGroup, empty for missing or malformed input
        """
        groups: List[OptionGroup] = []
        if not isinstance(data, Mapping):
            return groups

        for name, values in data.items():
            parsed: List[OptionValue] = []
            for value in values or []:
                if isinstance(value, str):
                    parsed.append(OptionValue(value=value))
                elif isinstance(value, Mapping) and "value" in value:
                    parsed.append(
                        OptionValue(
                            value=str(value["value"]),
                            image_url=value.get("imageUrl") or None,
                        )
                    )
            groups.append(cls(name=name, options=parsed))
        return groups

    @staticmethod
    def to_mapping(groups: Optional[List["OptionGroup"]]) -> Dict[str, List[Dict[str, str]]]:
        return {
            group.name: [option.to_dict() for option in group.options]
            for group in groups or []
        }


@dataclass(slots=True)
class ProductGroup:
    id: str
    name: str
    icon: str = ""
    description: str = ""
    active: bool = True

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
            "active": self.active,
        }


@dataclass(slots=True)
class ProductRange:
    id: str
    name: str
    image: str = ""
    description: str = ""
    tags: List[str] = field(default_factory=list)
    active: bool = True

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "description": self.description,
            "tags": list(self.tags),
            "active": self.active,
        }


@dataclass(slots=True)
class Product:
    """
    An individual product as shown in step 4 of the wizard.

    ``files`` maps a download label to its URL; ``options`` is None when the
    product has no product-specific options.
    """

    id: str
    code: str
    name: str
    overview: str = ""
    description: str = ""
    specifications: List[str] = field(default_factory=list)
    image_gallery: List[str] = field(default_factory=list)
    files: Dict[str, str] = field(default_factory=dict)
    options: Optional[List[OptionGroup]] = None
    active: bool = True

    def to_details(self) -> Dict[str, Any]:
        """Denormalized detail record used in the document's productDetails."""
        return {
            "name": self.name,
            "overview": self.overview,
            "description": self.description,
            "specifications": list(self.specifications),
            "imageGallery": list(self.image_gallery),
            "files": dict(self.files),
        }

    def to_record(self) -> Dict[str, Any]:
        """Full entity record, options in their wire form when present."""
        record = {"id": self.id, "code": self.code, **self.to_details(), "active": self.active}
        if self.options is not None:
            record["options"] = OptionGroup.to_mapping(self.options)
        return record


# Wire (camelCase) field names accepted in update patches
WIRE_FIELD_NAMES = {
    "imageGallery": "image_gallery",
}
