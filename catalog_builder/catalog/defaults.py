"""
Presentation defaults for groups and ranges created without explicit values.

Well-known group and range names get a tailored icon, description and tag
set; anything else falls back to a generic value.
"""

from typing import Dict, List, Optional

DEFAULT_GROUP_ICON = "lucide:box"
DEFAULT_GROUP_DESCRIPTION = "Product category"
DEFAULT_RANGE_TAGS = ["Quality", "Durable", "Customizable"]

GROUP_ICONS: Dict[str, str] = {
    "Shelter": "lucide:home",
    "Toilet": "lucide:bath",
    "Bridge": "lucide:route",
    "Access": "lucide:wheelchair",
    "Seating": "lucide:armchair",
    "Lighting": "lucide:lamp",
}

GROUP_DESCRIPTIONS: Dict[str, str] = {
    "Shelter": "Outdoor structures for shade and protection",
    "Toilet": "Public and portable sanitation facilities",
    "Bridge": "Pedestrian and light vehicle crossings",
    "Access": "Ramps, stairs, and accessibility solutions",
    "Seating": "Benches and outdoor furniture options",
    "Lighting": "Outdoor and pathway lighting solutions",
}

RANGE_DESCRIPTIONS: Dict[str, str] = {
    # Shelter
    "Peninsula": "Modern shelters with excellent weather protection for parks and urban settings",
    "Whyalla": "Robust shelters designed for coastal and high-wind environments",
    "Coastal": "Corrosion-resistant designs perfect for beachfront and marine locations",
    "Urban": "Contemporary designs that blend with modern city landscapes",
    "Heritage": "Traditional designs that complement historic and cultural settings",
    # Toilet
    "EcoSan": "Environmentally friendly composting toilet solutions with minimal water usage",
    "Standard": "Reliable and cost-effective public toilet facilities",
    "Accessible": "Fully compliant accessible toilet facilities with enhanced features",
    "Premium": "High-end toilet facilities with superior finishes and amenities",
    "Compact": "Space-saving designs for areas with limited footprint",
    # Bridge
    "Small Span": "Compact bridges for garden paths and small water crossings",
    "Large Span": "Extended bridges for wider crossings and heavier loads",
    "Pedestrian": "Dedicated walkways designed for high foot traffic areas",
    "Decorative": "Ornamental bridges that serve as landscape features",
    "Heavy Duty": "Reinforced bridges capable of supporting maintenance vehicles",
}

RANGE_TAGS: Dict[str, List[str]] = {
    "Peninsula": ["Modern", "Weather-resistant", "Versatile"],
    "Whyalla": ["Robust", "Wind-resistant", "Durable"],
    "Coastal": ["Corrosion-resistant", "Salt-proof", "UV-stable"],
    "Urban": ["Contemporary", "Modular", "Space-efficient"],
    "Heritage": ["Traditional", "Ornate", "Classic"],
    "EcoSan": ["Eco-friendly", "Low-water", "Composting"],
    "Standard": ["Cost-effective", "Reliable", "Low-maintenance"],
    "Accessible": ["ADA Compliant", "Spacious", "Universal"],
    "Premium": ["High-end", "Enhanced features", "Superior finishes"],
    "Compact": ["Space-saving", "Efficient", "Urban-friendly"],
    "Small Span": ["Compact", "Decorative", "Easy-install"],
    "Large Span": ["Extended", "Reinforced", "Heavy-load"],
    "Pedestrian": ["High-traffic", "Safety-focused", "Accessible"],
    "Decorative": ["Ornamental", "Artistic", "Feature piece"],
    "Heavy Duty": ["Vehicle-rated", "Industrial", "Maximum strength"],
}


def known_group_icon(name: str) -> Optional[str]:
    """Tailored icon for a well-known group name, or None."""
    return GROUP_ICONS.get(name)


def group_icon(name: str) -> str:
    return GROUP_ICONS.get(name, DEFAULT_GROUP_ICON)


def group_description(name: str) -> str:
    return GROUP_DESCRIPTIONS.get(name, DEFAULT_GROUP_DESCRIPTION)


def range_description(name: str) -> str:
    return RANGE_DESCRIPTIONS.get(name, f"{name} product range")


def range_tags(name: str) -> List[str]:
    """Tag set for a range name; a fresh list the caller may mutate."""
    return list(RANGE_TAGS.get(name, DEFAULT_RANGE_TAGS))
