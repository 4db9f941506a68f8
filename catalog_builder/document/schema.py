"""
Shape of the six-step wizard document.

The field names below are read by the wizard front end and the REST
backend, so they must not change.
"""

import copy
from typing import Any, Dict, List

STEP_TITLES = {
    1: "Select Product Group",
    2: "Select Product Range",
    3: "Select Individual Product",
    4: "View Product Content",
    5: "Configure Options",
    6: "Contact Information",
}

# Payload key carried by each step
STEP_PAYLOAD_KEYS = {
    1: "categories",
    2: "ranges",
    3: "products",
    4: "productDetails",
    5: "options",
    6: "fields",
}

# Top-level key holding the editor's full entity state next to the steps
BUILDER_STATE_KEY = "stepper_data_builder"

# Step 5 key mapping product code to its product-specific options
PRODUCT_OPTIONS_KEY = "productOptions"

# Range keys under step 3 that hold products with no range
UNGROUPED_RANGE_KEYS = ("", "undefined")

DEFAULT_CONTACT_FIELDS: List[Dict[str, Any]] = [
    {"name": "fullName", "label": "Full Name", "type": "text", "required": True},
    {"name": "email", "label": "Email Address", "type": "email", "required": True},
    {"name": "phone", "label": "Phone Number", "type": "tel", "required": False},
    {"name": "company", "label": "Company/Organization", "type": "text", "required": False},
    {"name": "message", "label": "Additional Notes", "type": "textarea", "required": False},
]


def default_step(number: int) -> Dict[str, Any]:
    """
    Build an empty step record.

    Args:
        number: Step number between 1 and 6

    Returns:
        Dict with ``step``, ``title`` and the step's empty payload
    """
    payload_key = STEP_PAYLOAD_KEYS[number]
    if number == 1:
        payload: Any = []
    elif number == 6:
        payload = copy.deepcopy(DEFAULT_CONTACT_FIELDS)
    else:
        payload = {}
    return {"step": number, "title": STEP_TITLES[number], payload_key: payload}


def new_document() -> Dict[str, Any]:
    """Return an empty six-step document with the default contact form."""
    return {"stepperForm": {"steps": [default_step(number) for number in range(1, 7)]}}


def get_steps(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Return the steps list of a document, padded to six entries.

    Accepts both the wrapped form ``{"stepperForm": {"steps": [...]}}`` and
    a bare ``{"steps": [...]}``. Missing or malformed steps are replaced
    with defaults.
    """
    container = document.get("stepperForm", document) if isinstance(document, dict) else {}
    raw_steps = container.get("steps") if isinstance(container, dict) else None
    steps = list(raw_steps) if isinstance(raw_steps, list) else []

    padded: List[Dict[str, Any]] = []
    for index in range(6):
        step = steps[index] if index < len(steps) else None
        padded.append(step if isinstance(step, dict) else default_step(index + 1))
    return padded
