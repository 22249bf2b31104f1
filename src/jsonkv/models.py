"""Data models for the JSON document store."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

# Outcome statuses
OK = "ok"
NOT_FOUND = "not_found"
INVALID_KEY = "invalid_key"
EXISTS = "exists"
INVALID_VALUE = "invalid_value"


class StoreError(Exception):
    """Base class for record store failures."""

    status = "error"


class DocumentNotFoundError(StoreError):
    """Document file is missing, unreadable, or not a JSON object."""

    status = NOT_FOUND


class InvalidKeyError(StoreError):
    """Requested key is not present in the document."""

    status = INVALID_KEY


class DocumentExistsError(StoreError):
    status = EXISTS


class InvalidValueError(StoreError):
    """Key or value cannot be stored as strict UTF-8 JSON."""

    status = INVALID_VALUE


_ERRORS: dict[str, type[StoreError]] = {
    NOT_FOUND: DocumentNotFoundError,
    INVALID_KEY: InvalidKeyError,
    EXISTS: DocumentExistsError,
    INVALID_VALUE: InvalidValueError,
}


def reject_constant(name: str) -> Any:
    """``parse_constant`` hook: NaN / Infinity / -Infinity are not JSON."""
    raise ValueError(f"non-finite number not allowed: {name}")


def dump_json(value: Any) -> str:
    """Compact strict JSON. Raises TypeError / ValueError for what JSON can't hold."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def value_text(value: Any) -> str:
    """String form of a document value as written to the audit log.

    Strings are used verbatim; everything else is compact JSON
    (``true``, ``3``, ``null``, ``{"a":1}``).
    """
    if isinstance(value, str):
        return value
    return dump_json(value)


# ---------------------------------------------------------------------------
# Audit message formats (stable: consumers tail the log)
# ---------------------------------------------------------------------------


def msg_invalid_key(file: str, key: str) -> str:
    return f"ERROR: {key} Invalid key on {file}"


def msg_invalid_value(file: str, key: str) -> str:
    return f"ERROR: {key} Invalid value on {file}"


def msg_not_found(file: str) -> str:
    return f"No such file or directory {file}"


def msg_set(file: str, key: str, value: Any) -> str:
    return f"Key: {key}: {value_text(value)} set in {file}"


def msg_removed_key(file: str, key: str) -> str:
    return f"Key: {key} removed from {file}"


def msg_removed_file(file: str) -> str:
    return f"Removed {file}"


def msg_created(file: str) -> str:
    return f"{file} created!"


def msg_exists(file: str) -> str:
    return f"{file} already exists"


@dataclass(frozen=True)
class LogEntry:
    """One line of the audit log: ``<message> <epoch-millis>``."""

    message: str
    timestamp_ms: int
    error: str | None = None          # sink failure, if the append did not land

    def line(self) -> str:
        # one record per physical line
        message = self.message.replace("\r", "\\r").replace("\n", "\\n")
        return f"{message} {self.timestamp_ms}\n"

    @property
    def written(self) -> bool:
        return self.error is None


@dataclass
class Outcome:
    """Result of a single store operation."""

    status: str
    message: str
    file: str
    key: str | None = None
    value: Any = None
    audit_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == OK

    def raise_for_status(self) -> Outcome:
        """Raise the matching StoreError if the operation failed."""
        if self.ok:
            return self
        exc_type = _ERRORS.get(self.status, StoreError)
        raise exc_type(self.message)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "status": self.status,
            "message": self.message,
            "file": self.file,
        }
        if self.key is not None:
            d["key"] = self.key
        if self.ok and self.value is not None:
            d["value"] = self.value
        if self.audit_error:
            d["audit_error"] = self.audit_error
        return d
