"""
Structured Documents

In-memory tree model for structured configuration files. A tree is built from
plain JSON-compatible Python values: ``dict`` (object), ``list`` (array) and
``str``/``int``/``float``/``bool``/``None`` (scalar). JSON is the native
format; YAML files are read and written through PyYAML when their suffix asks
for it.
"""

import copy
import json
import math
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from strata.infrastructure.exceptions import FormatError, PathNotFoundError


_SCALAR_TYPES = (str, int, float, bool, type(None))
_MISSING = object()


class _DocumentLoader(yaml.SafeLoader):
    """Safe loader that leaves timestamps as strings."""


_DocumentLoader.yaml_implicit_resolvers = {
    first_char: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class DocumentFormat(Enum):
    """On-disk syntax of a structured document."""
    JSON = "json"
    YAML = "yaml"

    @classmethod
    def for_path(cls, path: Union[str, Path]) -> 'DocumentFormat':
        """YAML for ``.yaml``/``.yml`` files, JSON for everything else."""
        if Path(path).suffix.lower() in (".yaml", ".yml"):
            return cls.YAML
        return cls.JSON


def check_node(node: Any, location: str = "$") -> None:
    """Raise ``FormatError`` if ``node`` is not a JSON-compatible tree."""
    if isinstance(node, dict):
        for key, value in node.items():
            if not isinstance(key, str):
                raise FormatError(f"Object key {key!r} at {location} is not a string")
            check_node(value, f"{location}.{key}")
    elif isinstance(node, list):
        for index, item in enumerate(node):
            check_node(item, f"{location}[{index}]")
    elif isinstance(node, float):
        if not math.isfinite(node):
            raise FormatError(f"Non-finite number at {location} is not representable")
    elif not isinstance(node, _SCALAR_TYPES):
        raise FormatError(f"Value of type {type(node).__name__} at {location} is not a document node")


def _detach(node: Any) -> Any:
    """Rebuild containers so YAML aliases no longer share one object."""
    if isinstance(node, dict):
        return {key: _detach(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_detach(item) for item in node]
    return node


def nodes_equal(left: Any, right: Any) -> bool:
    """Structural equality that, unlike ``==``, keeps ``True`` and ``1`` apart."""
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(nodes_equal(left[k], right[k]) for k in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(nodes_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
        return False
    return left == right


class StructuredDocument:
    """
    A configuration tree.

    The root may be any node, though configuration files normally hold an
    object. Path updates mutate the tree in place; ``copy`` and ``to_python``
    hand out independent trees.
    """

    __slots__ = ("root",)

    def __init__(self, root: Any = None):
        if root is None:
            root = {}
        check_node(root)
        self.root = root

    @property
    def kind(self) -> str:
        if isinstance(self.root, dict):
            return "object"
        if isinstance(self.root, list):
            return "array"
        return "scalar"

    def is_object(self) -> bool:
        return isinstance(self.root, dict)

    def copy(self) -> 'StructuredDocument':
        return StructuredDocument(copy.deepcopy(self.root))

    def to_python(self) -> Any:
        return copy.deepcopy(self.root)

    def get(self, dot_path: str, default: Any = None) -> Any:
        return get_path(self.root, dot_path, default)

    def set(self, dot_path: str, value: Any) -> 'StructuredDocument':
        set_path(self.root, dot_path, value)
        return self

    def serialize(self, indented: bool = True, format: DocumentFormat = DocumentFormat.JSON) -> str:
        return serialize_document(self, indented=indented, format=format)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructuredDocument):
            return NotImplemented
        return nodes_equal(self.root, other.root)

    def __repr__(self) -> str:
        return f"StructuredDocument({self.root!r})"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_document(
    data: Union[str, bytes],
    format: DocumentFormat = DocumentFormat.JSON,
    source: Optional[str] = None
) -> StructuredDocument:
    """
    Parse text or UTF-8 bytes into a document.

    Raises:
        FormatError: on any syntax violation; nothing is partially returned
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise FormatError(f"Document is not valid UTF-8: {e}", source=source) from e

    if format is DocumentFormat.YAML:
        try:
            root = _detach(yaml.load(data, Loader=_DocumentLoader))
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            raise FormatError(
                f"Invalid YAML document: {e}",
                source=source,
                line=mark.line + 1 if mark else None,
                column=mark.column + 1 if mark else None
            ) from e
        except RecursionError as e:
            raise FormatError("YAML document is nested too deeply", source=source) from e
    else:
        try:
            root = json.loads(data, parse_constant=_reject_constant)
        except json.JSONDecodeError as e:
            raise FormatError(
                f"Invalid JSON document: {e.msg}",
                source=source,
                line=e.lineno,
                column=e.colno
            ) from e
        except RecursionError as e:
            raise FormatError("JSON document is nested too deeply", source=source) from e
        except ValueError as e:
            raise FormatError(f"Invalid JSON document: {e}", source=source) from e

    try:
        check_node(root)
    except FormatError as e:
        raise FormatError(e.message, source=source) from e
    except RecursionError as e:
        raise FormatError("Document is nested too deeply", source=source) from e

    doc = StructuredDocument.__new__(StructuredDocument)
    doc.root = root
    return doc


def serialize_document(
    doc: Union[StructuredDocument, Any],
    indented: bool = True,
    format: DocumentFormat = DocumentFormat.JSON
) -> str:
    """
    Render a document (or raw tree) as text.

    Output is deterministic: keys keep insertion order, indented output uses
    two spaces and ends with a newline, compact output has no whitespace.
    """
    root = doc.root if isinstance(doc, StructuredDocument) else doc
    check_node(root)

    if format is DocumentFormat.YAML:
        return yaml.safe_dump(
            root,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=None if indented else True,
            indent=2,
            width=4096
        )

    if indented:
        return json.dumps(root, indent=2, ensure_ascii=False, allow_nan=False) + "\n"
    return json.dumps(root, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def _split_path(dot_path: str) -> List[str]:
    segments = dot_path.split(".")
    for segment in segments:
        if not segment:
            raise PathNotFoundError(f"Dot-path '{dot_path}' contains an empty segment", dot_path=dot_path)
    return segments


def set_path(tree: Any, dot_path: str, value: Any) -> Any:
    """
    Set or replace the leaf addressed by ``dot_path`` in place.

    Every segment but the last must name an existing object; nothing is
    created along the way.

    Raises:
        PathNotFoundError: if an intermediate segment is missing or not an object
    """
    segments = _split_path(dot_path)
    check_node(value)

    if not isinstance(tree, dict):
        raise PathNotFoundError(f"Document root is not an object; cannot set '{dot_path}'", dot_path=dot_path)

    current = tree
    for segment in segments[:-1]:
        child = current.get(segment, _MISSING)
        if child is _MISSING:
            raise PathNotFoundError(
                f"Segment '{segment}' of '{dot_path}' does not exist",
                dot_path=dot_path,
                segment=segment
            )
        if not isinstance(child, dict):
            raise PathNotFoundError(
                f"Segment '{segment}' of '{dot_path}' is not an object",
                dot_path=dot_path,
                segment=segment
            )
        current = child

    current[segments[-1]] = value
    return tree


def get_path(tree: Any, dot_path: str, default: Any = None) -> Any:
    """Value at ``dot_path``, or ``default`` when any segment does not resolve."""
    current = tree
    for segment in dot_path.split("."):
        if not isinstance(current, dict) or segment not in current:
            return default
        current = current[segment]
    return current


def try_parse_document(
    data: Union[str, bytes],
    format: DocumentFormat = DocumentFormat.JSON
) -> Optional[StructuredDocument]:
    """``parse_document`` that returns ``None`` instead of raising."""
    try:
        return parse_document(data, format)
    except FormatError:
        return None


def is_valid_document(data: Union[str, bytes], format: DocumentFormat = DocumentFormat.JSON) -> bool:
    return try_parse_document(data, format) is not None
