"""
Configuration Store

Loads, saves, updates, watches, backs up and restores structured
configuration files described by a ConfigDescriptor. Environment overlays
(``app.production.json`` on top of ``app.json``) are composed with the deep
merge rule from ``merge.py``.
"""

import os
import re
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple, Type, TypeVar, Union

from strata.infrastructure.caching import ExpiringCache
from strata.infrastructure.exceptions import FormatError, NotFoundError, StorageError, StrataException
from strata.infrastructure.observability.factory import get_framework_logger
from strata.infrastructure.storage import PathLockRegistry, atomic_write_bytes, atomic_write_text, copy_file
from .codec import decode, encode
from .document import DocumentFormat, StructuredDocument, parse_document, serialize_document, set_path
from .merge import merge
from .models import StoreSettings
from .watcher import WatchCallback, WatchRegistration, WatchRegistry


T = TypeVar('T')


@dataclass(frozen=True)
class ConfigDescriptor:
    """
    Identifies a logical configuration.

    Attributes:
        file_name: Base file name, e.g. ``app.json``
        directory: Directory holding the file; the store's config directory if None
        environment: Optional environment name selecting ``app.{environment}.json``
    """
    file_name: str
    directory: Optional[Union[str, Path]] = None
    environment: Optional[str] = None

    def base_path(self, default_directory: Path) -> Path:
        directory = Path(self.directory) if self.directory is not None else default_directory
        return directory / self.file_name

    def environment_file_name(self, environment: Optional[str] = None) -> Optional[str]:
        environment = environment or self.environment
        if not environment:
            return None
        name = Path(self.file_name)
        return str(name.with_name(f"{name.stem}.{environment}{name.suffix}"))

    def environment_path(self, default_directory: Path, environment: Optional[str] = None) -> Optional[Path]:
        env_name = self.environment_file_name(environment)
        if env_name is None:
            return None
        return self.base_path(default_directory).parent / Path(env_name).name

    def with_environment(self, environment: Optional[str]) -> 'ConfigDescriptor':
        return replace(self, environment=environment)


DescriptorLike = Union[ConfigDescriptor, str, Path]

_Snapshot = Tuple[int, int, int, int]


class ConfigStore:
    """
    Orchestrates structured configuration files.

    A store owns its watch table and per-path locks; nothing is shared
    between store instances. Read-modify-write operations on one path
    (save, update_path, backup, restore) are serialized in-process.

    Args:
        settings: Directory layout and I/O settings
        cache: Optional cache used to memoize parsed documents
        watch_registry: Watch table; a private one is created if omitted
        now: Wall-clock source for backup timestamps
    """

    def __init__(
        self,
        settings: Optional[StoreSettings] = None,
        cache: Optional[ExpiringCache] = None,
        watch_registry: Optional[WatchRegistry] = None,
        now: Optional[Callable[[], datetime]] = None
    ):
        self.settings = settings or StoreSettings()
        self._cache = cache
        self._watchers = watch_registry or WatchRegistry(self.settings.watch_poll_interval)
        self._locks = PathLockRegistry()
        self._now = now or datetime.now
        self._logger = get_framework_logger("config_store")

    @property
    def config_directory(self) -> Path:
        return self.settings.config_directory

    @property
    def watch_registry(self) -> WatchRegistry:
        return self._watchers

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @staticmethod
    def _descriptor(descriptor: DescriptorLike) -> ConfigDescriptor:
        if isinstance(descriptor, ConfigDescriptor):
            return descriptor
        return ConfigDescriptor(str(descriptor))

    def get_config_path(self, descriptor: DescriptorLike) -> Path:
        return self._descriptor(descriptor).base_path(self.config_directory)

    def ensure_directory(self, directory: Optional[Union[str, Path]] = None) -> Path:
        target = Path(directory) if directory is not None else self.config_directory
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create directory {target}: {e}", path=str(target), operation="mkdir") from e
        return target

    def exists(self, descriptor: DescriptorLike) -> bool:
        return self.get_config_path(descriptor).is_file()

    def _backup_directory(self, base_path: Path) -> Path:
        return base_path.parent / self.settings.backup_directory_name

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    def _cache_key(self, path: Path) -> str:
        return f"strata:document:{path.resolve()}"

    def _read_document(self, path: Path) -> Optional[StructuredDocument]:
        """Parse the file at ``path``; None if it does not exist."""
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Cannot stat {path}: {e}", path=str(path), operation="read") from e

        snapshot: _Snapshot = (st.st_mtime_ns, st.st_ctime_ns, st.st_ino, st.st_size)
        if self._cache is not None:
            cached = self._cache.get(self._cache_key(path))
            if cached is not None and cached[0] == snapshot:
                return cached[1].copy()

        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}", path=str(path), operation="read") from e

        try:
            text = data.decode(self.settings.encoding).lstrip("\ufeff")
        except UnicodeDecodeError as e:
            raise FormatError(f"File is not valid {self.settings.encoding}: {e}", source=str(path)) from e

        document = parse_document(text, DocumentFormat.for_path(path), source=str(path))
        if self._cache is not None:
            self._cache.set(self._cache_key(path), (snapshot, document.copy()))
        return document

    def _write_tree(self, path: Path, tree: Any) -> None:
        text = serialize_document(
            tree,
            indented=self.settings.indent_output,
            format=DocumentFormat.for_path(path)
        )
        try:
            atomic_write_text(path, text, self.settings.encoding)
        finally:
            self._invalidate(path)

    def _invalidate(self, path: Path) -> None:
        if self._cache is not None:
            self._cache.remove(self._cache_key(path))

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load_document(self, descriptor: DescriptorLike) -> Optional[StructuredDocument]:
        """Raw base document, or None when the file does not exist."""
        path = self.get_config_path(descriptor)
        with self._logger.config_context(path):
            return self._read_document(path)

    def load(self, descriptor: DescriptorLike, target: Optional[Type[T]] = None) -> Optional[Any]:
        """
        Load the base file and decode it into ``target``.

        Returns:
            The decoded value, the raw tree when ``target`` is None, or None
            when the base file does not exist.

        Raises:
            FormatError: malformed file
            DecodeError: well-formed file that does not fit ``target``
        """
        document = self.load_document(descriptor)
        if document is None:
            return None
        return decode(document, target)

    def load_with_environment(
        self,
        descriptor: DescriptorLike,
        target: Optional[Type[T]] = None,
        environment: Optional[str] = None
    ) -> Optional[Any]:
        """
        Load the base file with its environment overlay merged on top.

        Each file is optional. With both present the environment document is
        deep-merged onto the base (objects merge, everything else is replaced);
        with one present it is returned unchanged; with neither, None.
        """
        desc = self._descriptor(descriptor)
        base_path = desc.base_path(self.config_directory)
        env_path = desc.environment_path(self.config_directory, environment)

        with self._logger.config_context(base_path):
            base = self._read_document(base_path)
            overlay = self._read_document(env_path) if env_path is not None else None

            if base is None and overlay is None:
                return None
            if overlay is None:
                return decode(base, target)
            if base is None:
                return decode(overlay, target)

            self._logger.debug("Merging environment overlay", extra={
                "base": str(base_path),
                "overlay": str(env_path)
            })
            return decode(merge(base.root, overlay.root), target)

    def try_load(
        self,
        descriptor: DescriptorLike,
        target: Optional[Type[T]] = None,
        with_environment: bool = False
    ) -> Optional[Any]:
        """Like ``load``/``load_with_environment`` but returns None on any error."""
        try:
            if with_environment:
                return self.load_with_environment(descriptor, target)
            return self.load(descriptor, target)
        except StrataException as e:
            self._logger.warning("Configuration could not be loaded", extra={
                "descriptor": str(descriptor),
                "error": e.to_dict()
            })
            return None

    def save(self, descriptor: DescriptorLike, value: Any) -> Path:
        """Encode ``value`` and overwrite the base file, creating its directory."""
        path = self.get_config_path(descriptor)
        tree = encode(value)
        with self._locks.lock_for(path), self._logger.config_context(path):
            self._write_tree(path, tree)
            self._logger.info("Configuration saved")
        return path

    def update_path(self, descriptor: DescriptorLike, dot_path: str, value: Any) -> bool:
        """
        Set one value inside the base file.

        Returns:
            False when the base file does not exist (nothing is written),
            True after a successful update.

        Raises:
            PathNotFoundError: an intermediate segment is missing or not an
                object; the file is left untouched
        """
        path = self.get_config_path(descriptor)
        node = encode(value)
        with self._locks.lock_for(path), self._logger.config_context(path):
            document = self._read_document(path)
            if document is None:
                self._logger.debug("Update skipped, file does not exist", extra={"dot_path": dot_path})
                return False
            set_path(document.root, dot_path, node)
            self._write_tree(path, document.root)
            self._logger.info("Configuration value updated", extra={"dot_path": dot_path})
        return True

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def watch(self, descriptor: DescriptorLike, callback: WatchCallback) -> WatchRegistration:
        """
        Call ``callback(path)`` when the base file is created or rewritten.

        Replaces any earlier watcher on the same resolved path. The callback
        runs on a watcher thread and may fire zero or several times for one
        save; wrap it with ``debounce`` for bursty writers.
        """
        return self._watchers.register(self.get_config_path(descriptor), callback)

    def stop_watching(self, descriptor: DescriptorLike) -> bool:
        return self._watchers.unregister(self.get_config_path(descriptor))

    def stop_all_watchers(self) -> None:
        self._watchers.close()

    # ------------------------------------------------------------------
    # Backup / restore
    # ------------------------------------------------------------------

    def backup(self, descriptor: DescriptorLike) -> Optional[Path]:
        """
        Copy the base file to ``Backups/{stem}.{timestamp}{suffix}``.

        Returns:
            Path of the new backup, or None when there is no base file.
        """
        path = self.get_config_path(descriptor)
        with self._locks.lock_for(path), self._logger.config_context(path):
            return self._backup_locked(path)

    def _backup_locked(self, path: Path) -> Optional[Path]:
        if not path.is_file():
            return None
        timestamp = self._now().strftime(self.settings.backup_timestamp_format)
        backup_path = self._backup_directory(path) / f"{path.stem}.{timestamp}{path.suffix}"
        copy_file(path, backup_path)
        self._logger.info("Configuration backed up", extra={"backup": str(backup_path)})
        return backup_path

    def list_backups(self, descriptor: DescriptorLike) -> List[Path]:
        """Backups of the base file, newest first."""
        path = self.get_config_path(descriptor)
        backup_dir = self._backup_directory(path)
        if not backup_dir.is_dir():
            return []
        pattern = re.compile(rf"^{re.escape(path.stem)}\.(\d+){re.escape(path.suffix)}$")
        backups = [p for p in backup_dir.iterdir() if p.is_file() and pattern.match(p.name)]
        return sorted(backups, key=lambda p: p.name, reverse=True)

    def restore(self, descriptor: DescriptorLike, backup_file_name: str) -> Optional[Path]:
        """
        Replace the base file with a named backup.

        The current file is backed up first so the restore can itself be
        undone.

        Returns:
            Path of the safety backup of the replaced file, if there was one.

        Raises:
            NotFoundError: the named backup does not exist
        """
        path = self.get_config_path(descriptor)
        backup_dir = self._backup_directory(path)
        backup_path = backup_dir / backup_file_name

        if Path(backup_file_name).name != backup_file_name or not backup_path.is_file():
            raise NotFoundError(f"Backup file does not exist: {backup_path}", path=str(backup_path))

        with self._locks.lock_for(path), self._logger.config_context(path):
            try:
                data = backup_path.read_bytes()
            except FileNotFoundError as e:
                raise NotFoundError(f"Backup file does not exist: {backup_path}", path=str(backup_path)) from e
            except OSError as e:
                raise StorageError(f"Failed to read {backup_path}: {e}", path=str(backup_path), operation="restore") from e
            # Read first: a same-second safety backup may overwrite the source
            safety_backup = self._backup_locked(path)
            try:
                atomic_write_bytes(path, data)
            finally:
                self._invalidate(path)
            self._logger.info("Configuration restored", extra={"backup": backup_file_name})
        return safety_backup

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.stop_all_watchers()

    def __enter__(self) -> 'ConfigStore':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
