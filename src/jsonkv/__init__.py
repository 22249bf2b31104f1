"""Key-value store over JSON documents, one document per file.

Layout:
    <data_dir>/
        user.json         # {"email": "...", "username": "..."}
        post.json
    log.txt               # audit log, one line per operation:
                          #   <message> <unix-epoch-millis>

Every RecordStore operation (get / set / remove / create_file / delete_file)
appends exactly one audit line and returns an Outcome; failures are reported
on the Outcome, never raised.

Documents are replaced atomically (temp file + rename).  Read-modify-write is
serialized per path within a process; cross-process writers are not.
"""

from jsonkv.audit import AuditLogger, FileSink, MemorySink
from jsonkv.config import JsonKVConfig, init_config, load_config
from jsonkv.models import (
    DocumentExistsError,
    DocumentNotFoundError,
    InvalidKeyError,
    InvalidValueError,
    LogEntry,
    Outcome,
    StoreError,
)
from jsonkv.store import AsyncRecordStore, RecordStore

__all__ = [
    "AsyncRecordStore",
    "AuditLogger",
    "DocumentExistsError",
    "DocumentNotFoundError",
    "FileSink",
    "InvalidKeyError",
    "InvalidValueError",
    "JsonKVConfig",
    "LogEntry",
    "MemorySink",
    "Outcome",
    "RecordStore",
    "StoreError",
    "init_config",
    "load_config",
]
