"""Record store: CRUD over single JSON documents stored as files.

RecordStore is the public API:
    store = RecordStore("/path/to/data", AuditLogger.to_file("log.txt"))
    store.set("user.json", "username", "scoot")
    store.get("user.json", "username").value      # "scoot"
    store.remove("user.json", "username")
    store.delete_file("user.json")

Each operation appends exactly one line to the audit log and returns an
Outcome.  NotFound / InvalidKey never propagate as exceptions; callers
check ``outcome.ok`` or call ``outcome.raise_for_status()``.

Documents are rewritten whole: serialize to a temp file in the same
directory, then os.replace() onto the target.  Read-modify-write and the
audit append run under a per-path mutex, so threads in one process never
lose each other's updates.  Writers in other processes are not coordinated.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jsonkv.audit import AuditLogger
from jsonkv.models import (
    OK,
    DocumentExistsError,
    DocumentNotFoundError,
    InvalidKeyError,
    InvalidValueError,
    Outcome,
    StoreError,
    dump_json,
    msg_created,
    msg_exists,
    msg_invalid_key,
    msg_invalid_value,
    msg_not_found,
    msg_removed_file,
    msg_removed_key,
    msg_set,
    reject_constant,
    value_text,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from jsonkv.config import JsonKVConfig

logger = logging.getLogger("jsonkv.store")


def _is_falsy(value: Any) -> bool:
    """Loose truthiness: null, false, 0 and "" count as missing. [] and {} do not."""
    if value is None or value is False or value == "":
        return True
    return type(value) in (int, float) and value == 0


@dataclass
class _PathLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0            # holders + waiters; entry is dropped at zero


class RecordStore:
    """File-backed JSON document store."""

    def __init__(
        self,
        root: Path | str,
        audit: AuditLogger,
        *,
        falsy_is_missing: bool = False,
    ) -> None:
        self.root = Path(root)
        self.audit = audit
        self.falsy_is_missing = falsy_is_missing
        self._locks: dict[Path, _PathLock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(cls, cfg: JsonKVConfig) -> RecordStore:
        return cls(
            cfg.store.data_dir,
            AuditLogger.to_file(cfg.audit.log_path),
            falsy_is_missing=cfg.store.falsy_is_missing,
        )

    # ------------------------------------------------------------------
    # Paths and locking
    # ------------------------------------------------------------------

    def path_for(self, file: str) -> Path:
        p = Path(file)
        return p if p.is_absolute() else self.root / p

    @contextlib.contextmanager
    def _locked(self, file: str) -> Iterator[Path]:
        path = self.path_for(file)
        key = Path(os.path.abspath(path))
        with self._locks_guard:
            entry = self._locks.setdefault(key, _PathLock())
            entry.users += 1
        try:
            with entry.lock:
                yield path
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _read(self, path: Path, file: str) -> dict[str, Any]:
        try:
            with path.open(encoding="utf-8") as f:
                data = json.load(f, parse_constant=reject_constant)
        except (OSError, ValueError) as exc:
            logger.debug("read failed: %s: %s", path, exc)
            raise DocumentNotFoundError(msg_not_found(file)) from exc
        if not isinstance(data, dict):
            logger.debug("not a JSON object: %s", path)
            raise DocumentNotFoundError(msg_not_found(file))
        return data

    def _encode(self, doc: dict[str, Any], file: str, key: str) -> bytes:
        """Serialize to strict UTF-8 JSON before anything touches the disk."""
        try:
            return dump_json(doc).encode("utf-8")
        except (TypeError, ValueError) as exc:
            logger.debug("cannot store %r in %s: %s", key, file, exc)
            raise InvalidValueError(msg_invalid_value(file, key)) from exc

    def _write(self, path: Path, file: str, payload: bytes) -> None:
        """Atomically replace the document: write tmp in the same dir, then rename."""
        tmp = ""
        replaced = False
        try:
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            # mkstemp creates 0600; keep the document's existing mode
            os.chmod(tmp, path.stat().st_mode & 0o777)
            os.replace(tmp, path)
            replaced = True
        except OSError as exc:
            logger.warning("write failed: %s", path, exc_info=True)
            raise DocumentNotFoundError(msg_not_found(file)) from exc
        finally:
            if tmp and not replaced:
                with contextlib.suppress(OSError):
                    os.unlink(tmp)

    def _require_key(self, doc: dict[str, Any], file: str, key: str) -> Any:
        if key not in doc:
            raise InvalidKeyError(msg_invalid_key(file, key))
        value = doc[key]
        if self.falsy_is_missing and _is_falsy(value):
            raise InvalidKeyError(msg_invalid_key(file, key))
        return value

    def _record(
        self,
        status: str,
        message: str,
        file: str,
        key: str | None = None,
        value: Any = None,
    ) -> Outcome:
        entry = self.audit.log(message)
        return Outcome(
            status=status,
            message=message,
            file=file,
            key=key,
            value=value,
            audit_error=entry.error,
        )

    def _fail(self, exc: StoreError, file: str, key: str | None = None) -> Outcome:
        return self._record(exc.status, str(exc), file, key)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get(self, file: str, key: str) -> Outcome:
        """Look up ``key``; the audit line is the value's string form."""
        with self._locked(file) as path:
            try:
                value = self._require_key(self._read(path, file), file, key)
            except StoreError as exc:
                return self._fail(exc, file, key)
            return self._record(OK, value_text(value), file, key, value)

    def set(self, file: str, key: str, value: Any) -> Outcome:
        """Assign ``document[key] = value`` and rewrite the document.

        The document must already exist (see create_file).
        """
        with self._locked(file) as path:
            try:
                doc = self._read(path, file)
                doc[key] = value
                self._write(path, file, self._encode(doc, file, key))
            except StoreError as exc:
                return self._fail(exc, file, key)
            return self._record(OK, msg_set(file, key, value), file, key, value)

    def remove(self, file: str, key: str) -> Outcome:
        """Delete ``key`` and rewrite. A missing key leaves the file untouched."""
        with self._locked(file) as path:
            try:
                doc = self._read(path, file)
                old = self._require_key(doc, file, key)
                del doc[key]
                self._write(path, file, self._encode(doc, file, key))
            except StoreError as exc:
                return self._fail(exc, file, key)
            return self._record(OK, msg_removed_key(file, key), file, key, old)

    def create_file(self, file: str) -> Outcome:
        """Create the document as ``{}`` if it does not exist yet."""
        with self._locked(file) as path:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with path.open("x", encoding="utf-8") as f:
                    f.write("{}")
            except FileExistsError:
                return self._fail(DocumentExistsError(msg_exists(file)), file)
            except OSError:
                logger.warning("create failed: %s", path, exc_info=True)
                return self._fail(DocumentNotFoundError(msg_not_found(file)), file)
            return self._record(OK, msg_created(file), file, value={})

    def delete_file(self, file: str) -> Outcome:
        with self._locked(file) as path:
            try:
                path.unlink()
            except OSError as exc:
                logger.debug("delete failed: %s: %s", path, exc)
                return self._fail(DocumentNotFoundError(msg_not_found(file)), file)
            return self._record(OK, msg_removed_file(file), file)


class AsyncRecordStore:
    """asyncio facade: each operation runs the RecordStore call in a worker thread."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def get(self, file: str, key: str) -> Outcome:
        return await asyncio.to_thread(self.store.get, file, key)

    async def set(self, file: str, key: str, value: Any) -> Outcome:
        return await asyncio.to_thread(self.store.set, file, key, value)

    async def remove(self, file: str, key: str) -> Outcome:
        return await asyncio.to_thread(self.store.remove, file, key)

    async def create_file(self, file: str) -> Outcome:
        return await asyncio.to_thread(self.store.create_file, file)

    async def delete_file(self, file: str) -> Outcome:
        return await asyncio.to_thread(self.store.delete_file, file)
