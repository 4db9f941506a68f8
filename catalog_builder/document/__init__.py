"""Wizard document schema and store conversion."""

from .schema import (
    BUILDER_STATE_KEY,
    DEFAULT_CONTACT_FIELDS,
    STEP_TITLES,
    get_steps,
    new_document,
)
from .transformer import DocumentTransformer

__all__ = [
    "BUILDER_STATE_KEY",
    "DEFAULT_CONTACT_FIELDS",
    "STEP_TITLES",
    "get_steps",
    "new_document",
    "DocumentTransformer",
]
