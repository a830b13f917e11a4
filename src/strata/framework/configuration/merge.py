"""
Deep merge of configuration trees.

Objects merge key by key; anything else (arrays, scalars, null, or a type
mismatch) is replaced by the overlay outright. This is how an environment
overlay composes with its base file, and how layered settings sources
compose by priority.
"""

import copy
from typing import Any

from .document import StructuredDocument


def merge(base: Any, overlay: Any) -> Any:
    """
    Return a new tree with ``overlay`` merged onto ``base``.

    Neither input is mutated. Keys keep base order, with overlay-only keys
    appended in overlay order.
    """
    if isinstance(base, dict) and isinstance(overlay, dict):
        result = {}
        for key, value in base.items():
            if key in overlay:
                result[key] = merge(value, overlay[key])
            else:
                result[key] = copy.deepcopy(value)
        for key, value in overlay.items():
            if key not in base:
                result[key] = copy.deepcopy(value)
        return result

    # Arrays are never merged element-wise; None is a real overlay value
    return copy.deepcopy(overlay)


def merge_documents(base: StructuredDocument, overlay: StructuredDocument) -> StructuredDocument:
    return StructuredDocument(merge(base.root, overlay.root))
