from __future__ import annotations

import json
from pathlib import Path

import pytest

from jsonkv.audit import AuditLogger, MemorySink
from jsonkv.store import RecordStore

FIXED_TS = 1563221866619


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def audit(sink: MemorySink) -> AuditLogger:
    return AuditLogger(sink, clock=lambda: FIXED_TS)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    d = tmp_path / "data"
    d.mkdir()
    (d / "user.json").write_text(json.dumps({
        "firstname": "Scott",
        "lastname": "Roberts",
        "email": "sroberts@talentpath.com",
    }))
    return d


@pytest.fixture
def store(data_dir: Path, audit: AuditLogger) -> RecordStore:
    return RecordStore(data_dir, audit)
