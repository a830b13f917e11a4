"""
Typed decoding and encoding of configuration trees.

Decoding goes through pydantic: a ``BaseModel`` subclass, a dataclass, or
any type a ``TypeAdapter`` understands. Object keys are matched to field
names and aliases case-insensitively before validation, so ``{"Host": ...}``
fills a field called ``host``.
"""

import copy
import dataclasses
import typing
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, PydanticSchemaGenerationError, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from strata.infrastructure.exceptions import DecodeError, FormatError
from .document import StructuredDocument, check_node


T = TypeVar('T')


def _field_types(target: Any) -> Optional[Dict[str, Any]]:
    """Map of canonical key -> annotation for models and dataclasses."""
    if isinstance(target, type) and issubclass(target, BaseModel):
        fields: Dict[str, Any] = {}
        for name, info in target.model_fields.items():
            fields[info.alias or name] = info.annotation
            if not info.alias:
                continue
            if target.model_config.get("populate_by_name") or target.model_config.get("validate_by_name"):
                fields[name] = info.annotation
        return fields
    if isinstance(target, type) and dataclasses.is_dataclass(target):
        hints = typing.get_type_hints(target)
        return {f.name: hints.get(f.name, Any) for f in dataclasses.fields(target)}
    return None


def _align_keys(data: Any, target: Any) -> Any:
    """Rename object keys to the target's field names, ignoring case."""
    origin = typing.get_origin(target)

    if origin is Union:
        for arg in typing.get_args(target):
            if _field_types(arg) is not None and isinstance(data, dict):
                return _align_keys(data, arg)
        return data

    if isinstance(data, list) and origin in (list, tuple, set, frozenset):
        args = typing.get_args(target)
        # Only homogeneous tuple[X, ...] has a single item type
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            return data
        item_type = args[0] if args else Any
        return [_align_keys(item, item_type) for item in data]

    if isinstance(data, dict) and origin is dict:
        args = typing.get_args(target)
        value_type = args[1] if len(args) == 2 else Any
        return {key: _align_keys(value, value_type) for key, value in data.items()}

    fields = _field_types(target)
    if fields is None or not isinstance(data, dict):
        return data

    by_lower = {name.lower(): name for name in fields}
    aligned: Dict[str, Any] = {}
    # Exact matches win over case-insensitive ones
    for key, value in data.items():
        if key in fields:
            aligned[key] = _align_keys(value, fields[key])
    for key, value in data.items():
        if key in fields:
            continue
        canonical = by_lower.get(key.lower()) if isinstance(key, str) else None
        if canonical is None:
            aligned.setdefault(key, value)
        elif canonical not in aligned:
            aligned[canonical] = _align_keys(value, fields[canonical])
    return aligned


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", None) or str(target)


def decode(tree: Any, target: Optional[Type[T]] = None) -> Any:
    """
    Decode a tree into ``target``.

    With no target, an independent copy of the raw tree is returned.

    Raises:
        DecodeError: if the tree does not fit the target shape
    """
    if isinstance(tree, StructuredDocument):
        tree = tree.root
    if target is None or target is Any:
        return copy.deepcopy(tree)

    data = _align_keys(tree, target)
    try:
        if isinstance(target, type) and issubclass(target, BaseModel):
            return target.model_validate(data)
        return TypeAdapter(target).validate_python(data)
    except ValidationError as e:
        raise DecodeError(
            f"Document does not match {_type_name(target)}: {e.error_count()} error(s)",
            target=_type_name(target),
            errors=e.errors(include_url=False, include_context=False)
        ) from e
    except PydanticSchemaGenerationError as e:
        raise DecodeError(f"Cannot decode into {_type_name(target)}: {e}", target=_type_name(target)) from e


def try_decode(tree: Any, target: Optional[Type[T]] = None) -> Optional[Any]:
    try:
        return decode(tree, target)
    except DecodeError:
        return None


def encode(value: Any) -> Any:
    """
    Turn a typed value into a JSON-compatible tree.

    Models dump by alias; dataclasses, dates, paths and the like are converted
    by pydantic's JSON mode.

    Raises:
        FormatError: if the value has no document representation
    """
    if isinstance(value, StructuredDocument):
        return value.to_python()
    try:
        if isinstance(value, BaseModel):
            tree = value.model_dump(mode="json", by_alias=True)
        else:
            tree = TypeAdapter(type(value)).dump_python(value, mode="json")
    except (PydanticSerializationError, PydanticSchemaGenerationError) as e:
        raise FormatError(f"Cannot encode {type(value).__name__}: {e}") from e
    check_node(tree)
    return tree
