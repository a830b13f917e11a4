"""
Flat Section/Key-Value Documents

Parser, serializer, validator and file store for INI-style files:

    ; comment
    # comment
    [database]
    host = localhost
    port = 5432

Sections and keys keep file order. The format has no nesting, so merging is
a shallow per-key overwrite.
"""

import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from strata.infrastructure.exceptions import FormatError, StorageError
from strata.infrastructure.observability.factory import get_framework_logger
from strata.infrastructure.storage import PathLockRegistry, atomic_write_text


PathLike = Union[str, Path]

SECTION_PATTERN = re.compile(r"^\[[\w\-\s]+\]$")
KEY_VALUE_PATTERN = re.compile(r"^[\w\-\s]+=[^=]*$")

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_INT_PATTERN = re.compile(r"^[+-]?[0-9]+$")
_FLOAT_PATTERN = re.compile(
    r"^[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|nan|inf|infinity)$",
    re.IGNORECASE
)


def _is_comment_or_blank(line: str) -> bool:
    return not line or line.startswith(";") or line.startswith("#")


class FlatDocument:
    """Ordered mapping of section name to an ordered key/value mapping."""

    def __init__(self, sections: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self._sections: Dict[str, Dict[str, str]] = {}
        for name, values in (sections or {}).items():
            self._sections[name] = {key: str(value) for key, value in values.items()}

    @property
    def sections(self) -> Dict[str, Dict[str, str]]:
        return self._sections

    def section_names(self) -> List[str]:
        return list(self._sections)

    def get_section(self, section: str) -> Dict[str, str]:
        """Copy of one section; empty when it does not exist."""
        return dict(self._sections.get(section, {}))

    def get(self, section: str, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._sections.get(section, {}).get(key, default)

    def add_section(self, section: str) -> Dict[str, str]:
        return self._sections.setdefault(section, {})

    def set(self, section: str, key: str, value: Any) -> None:
        self.add_section(section)[key] = str(value)

    def delete_key(self, section: str, key: str) -> bool:
        values = self._sections.get(section)
        if values is None or key not in values:
            return False
        del values[key]
        return True

    def delete_section(self, section: str) -> bool:
        return self._sections.pop(section, None) is not None

    def merge_from(self, other: 'FlatDocument') -> 'FlatDocument':
        """Overlay every key of ``other`` onto this document."""
        for section, values in other.sections.items():
            target = self.add_section(section)
            for key, value in values.items():
                target[key] = value
        return self

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {name: dict(values) for name, values in self._sections.items()}

    def __contains__(self, section: object) -> bool:
        return section in self._sections

    def __iter__(self) -> Iterator[str]:
        return iter(self._sections)

    def __len__(self) -> int:
        return len(self._sections)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FlatDocument):
            return NotImplemented
        return self._sections == other._sections

    def __repr__(self) -> str:
        return f"FlatDocument({self._sections!r})"


def parse_flat(text: str) -> FlatDocument:
    """
    Parse flat text.

    A repeated ``[name]`` header starts the section over; lines before the
    first header and lines that are neither header nor ``key=value`` are
    ignored. Keys and values are split on the first ``=`` and trimmed.
    """
    document = FlatDocument()
    current: Optional[Dict[str, str]] = None

    for line in _LINE_BREAK.split(text):
        trimmed = line.strip()
        if _is_comment_or_blank(trimmed):
            continue

        if trimmed.startswith("[") and trimmed.endswith("]"):
            current = {}
            document.sections[trimmed[1:-1].strip()] = current
        elif current is not None and "=" in trimmed:
            key, _, value = trimmed.partition("=")
            current[key.strip()] = value.strip()

    return document


def serialize_flat(document: FlatDocument) -> str:
    """Render sections in stored order, each followed by a blank line."""
    lines: List[str] = []
    for section, values in document.sections.items():
        lines.append(f"[{section}]")
        lines.extend(f"{key}={value}" for key, value in values.items())
        lines.append("")
    return "".join(line + "\n" for line in lines)


def validate_flat_text(text: str) -> bool:
    """
    Strict syntax check.

    True only if every header and every ``key=value`` line is well formed,
    no key/value line precedes the first header, and at least one section
    exists.
    """
    has_section = False
    for line in _LINE_BREAK.split(text):
        trimmed = line.strip()
        if _is_comment_or_blank(trimmed):
            continue

        if trimmed.startswith("["):
            if not SECTION_PATTERN.match(trimmed):
                return False
            has_section = True
        elif "=" in trimmed:
            if not has_section or not KEY_VALUE_PATTERN.match(trimmed):
                return False

    return has_section


def parse_int(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    text = value.strip()
    return int(text) if _INT_PATTERN.match(text) else default


def parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    text = value.strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    return default


def parse_double(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    text = value.strip()
    return float(text) if _FLOAT_PATTERN.match(text) else default


class FlatDocumentStore:
    """
    File-backed access to flat documents.

    Every mutating call reads the file, applies the change and writes it back
    atomically before returning. A missing file reads as an empty document.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._locks = PathLockRegistry()
        self._logger = get_framework_logger("flat_store")

    def read(self, path: PathLike) -> FlatDocument:
        path = Path(path)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return FlatDocument()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}", path=str(path), operation="read") from e
        try:
            text = data.decode(self.encoding).lstrip("\ufeff")
        except UnicodeDecodeError as e:
            raise FormatError(f"File is not valid {self.encoding}: {e}", source=str(path)) from e
        return parse_flat(text)

    def write(self, path: PathLike, document: FlatDocument) -> None:
        path = Path(path)
        with self._locks.lock_for(path), self._logger.config_context(path):
            atomic_write_text(path, serialize_flat(document), self.encoding)
            self._logger.debug("Flat document written", extra={"sections": len(document)})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_value(self, path: PathLike, section: str, key: str, default: str = "") -> str:
        value = self.read(path).get(section, key)
        return default if value is None else value

    def get_section(self, path: PathLike, section: str) -> Dict[str, str]:
        return self.read(path).get_section(section)

    def get_sections(self, path: PathLike) -> List[str]:
        return self.read(path).section_names()

    def get_int(self, path: PathLike, section: str, key: str, default: int = 0) -> int:
        return parse_int(self.read(path).get(section, key), default)

    def get_bool(self, path: PathLike, section: str, key: str, default: bool = False) -> bool:
        return parse_bool(self.read(path).get(section, key), default)

    def get_double(self, path: PathLike, section: str, key: str, default: float = 0.0) -> float:
        return parse_double(self.read(path).get(section, key), default)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_value(self, path: PathLike, section: str, key: str, value: Any) -> None:
        """Set one key, creating the section and the file if needed."""
        with self._locks.lock_for(path):
            document = self.read(path)
            document.set(section, key, value)
            self.write(path, document)

    def delete_key(self, path: PathLike, section: str, key: str) -> bool:
        with self._locks.lock_for(path):
            document = self.read(path)
            if not document.delete_key(section, key):
                return False
            self.write(path, document)
            return True

    def delete_section(self, path: PathLike, section: str) -> bool:
        with self._locks.lock_for(path):
            document = self.read(path)
            if not document.delete_section(section):
                return False
            self.write(path, document)
            return True

    def merge(self, source_path: PathLike, target_path: PathLike) -> FlatDocument:
        """
        Overlay every key of the source file onto the target file.

        Sections missing from the target are created; existing keys are
        overwritten; nothing is removed. The target is created if absent.
        """
        source = self.read(source_path)
        with self._locks.lock_for(target_path):
            target = self.read(target_path).merge_from(source)
            self.write(target_path, target)
        self._logger.info("Flat documents merged", extra={
            "source": str(source_path),
            "target": str(target_path)
        })
        return target

    def validate(self, path: PathLike) -> bool:
        """Strict syntax check of a file; False on any violation or read failure."""
        try:
            text = Path(path).read_bytes().decode(self.encoding).lstrip("\ufeff")
        except (OSError, ValueError) as e:
            self._logger.debug("Flat document unreadable", extra={"path": str(path), "error": str(e)})
            return False
        return validate_flat_text(text)
