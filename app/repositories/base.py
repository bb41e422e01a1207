"""Repository base class used by all concrete repositories."""
import copy
import json
import logging
import os
import tempfile
from typing import Any, Callable, Optional, Tuple

from ..errors import InvalidArgument, StorageFailure


class BaseRepository:
    """Provides JSON-backed persistence for a single document file.

    Sub-classes pass a *default* document and a *validate* callable.  The
    file is read on construction (and seeded from *default* when it does
    not exist yet) and re-read whenever ``data`` is accessed after another
    process has replaced it, so every read-modify-write starts from what is
    on disk.  Mutations build a new document and hand it to :meth:`_store`,
    which only updates memory once the write succeeded.

    The atomic write uses a write-then-rename strategy so the file is never
    left in a partially-written state.
    """

    def __init__(self, file_path: str, default: Any = None,
                 validate: Optional[Callable[[Any], Any]] = None) -> None:
        self._path = file_path
        self._log = logging.getLogger(f'gamewheel.repository.{type(self).__name__}')
        self._default = default
        self._validate_doc = validate
        self._stamp: Optional[Tuple[int, int, int]] = None
        self._data: Any = None
        if validate is not None:
            self._data = self._load(default, validate)

    @property
    def path(self) -> str:
        return self._path

    @property
    def data(self) -> Any:
        self.reload()
        return self._data

    def reload(self) -> bool:
        """Re-read the file if it changed since the last read or write.

        Returns ``True`` when the document was reloaded.
        """
        if self._validate_doc is None or self._file_stamp() == self._stamp:
            return False
        self._log.debug("%s changed on disk, reloading", self._path)
        self._data = self._load(self._default, self._validate_doc)
        return True

    def _file_stamp(self) -> Optional[Tuple[int, int, int]]:
        try:
            st = os.stat(self._path)
        except OSError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _load(self, default: Any, validate: Callable[[Any], Any]) -> Any:
        """Load and validate JSON from *self._path*.

        A missing file is created from *default*.  An unreadable or malformed
        file raises :class:`StorageFailure` instead of being overwritten.
        """
        if not os.path.exists(self._path):
            self._log.info("Creating %s with defaults", self._path)
            data = copy.deepcopy(default)
            self._store(data)
            return data
        stamp = self._file_stamp()
        try:
            with open(self._path, 'r', encoding='utf-8') as fh:
                raw = json.load(fh)
        except (json.JSONDecodeError, OSError) as exc:
            self._log.error("Could not load %s: %s", self._path, exc)
            raise StorageFailure(f"Could not read {os.path.basename(self._path)}") from exc
        try:
            data = validate(raw)
        except InvalidArgument as exc:
            self._log.error("Invalid document in %s: %s", self._path, exc)
            raise StorageFailure(
                f"{os.path.basename(self._path)} is not a valid document: {exc}"
            ) from exc
        self._stamp = stamp
        return data

    def _store(self, data: Any) -> None:
        """Persist *data* and make it the in-memory document."""
        self._save(data)
        self._data = data
        self._stamp = self._file_stamp()

    def _save(self, data: Any) -> None:
        """Atomically write *data* as JSON to *self._path*."""
        dir_name = os.path.dirname(os.path.abspath(self._path))
        try:
            os.makedirs(dir_name, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix='.tmp')
        except OSError as exc:
            self._log.error("Could not write %s: %s", self._path, exc)
            raise StorageFailure(f"Could not write {os.path.basename(self._path)}") from exc
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except (OSError, TypeError, ValueError) as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            self._log.error("Could not write %s: %s", self._path, exc)
            raise StorageFailure(f"Could not write {os.path.basename(self._path)}") from exc
