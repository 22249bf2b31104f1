"""JsonKVConfig: project-local config for the JSON document store.

Looked up by walking upward from the working directory for jsonkv.toml.
With no config file, everything defaults relative to the working directory.

jsonkv.toml example:

    [store]
    data_dir = "data"           # documents are resolved relative to this
    falsy_is_missing = false    # true: null / false / 0 / "" count as absent keys

    [audit]
    log_path = "log.txt"        # relative to the project root

    [server]
    host = "127.0.0.1"
    port = 5000
    owner = "Adam"              # reported by GET /status
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_CONFIG_FILENAME = "jsonkv.toml"
_DEFAULT_DATA_DIR = "."
_DEFAULT_LOG_PATH = "log.txt"


@dataclass
class StoreConfig:
    data_dir: Path = field(default_factory=Path)
    falsy_is_missing: bool = False


@dataclass
class AuditConfig:
    log_path: Path = field(default_factory=lambda: Path(_DEFAULT_LOG_PATH))


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 5000
    owner: str = "Adam"


@dataclass
class JsonKVConfig:
    """Resolved configuration for a store project."""

    root: Path                      # directory that contains jsonkv.toml
    store: StoreConfig = field(default_factory=StoreConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME

    def ensure_dirs(self) -> None:
        """Create the data dir and the log file's parent if they don't exist."""
        self.store.data_dir.mkdir(parents=True, exist_ok=True)
        self.audit.log_path.parent.mkdir(parents=True, exist_ok=True)


def load_config(root: Path | str | None = None) -> JsonKVConfig:
    """Load jsonkv.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    store_section = raw.get("store", {})
    audit_section = raw.get("audit", {})
    srv_section = raw.get("server", {})

    return JsonKVConfig(
        root=root_path,
        store=StoreConfig(
            data_dir=root_path / store_section.get("data_dir", _DEFAULT_DATA_DIR),
            falsy_is_missing=bool(store_section.get("falsy_is_missing", False)),
        ),
        audit=AuditConfig(
            log_path=root_path / audit_section.get("log_path", _DEFAULT_LOG_PATH),
        ),
        server=ServerConfig(
            host=str(srv_section.get("host", "127.0.0.1")),
            port=int(srv_section.get("port", 5000)),
            owner=str(srv_section.get("owner", "Adam")),
        ),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for jsonkv.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, data_dir: str = _DEFAULT_DATA_DIR) -> Path:
    """Write a default jsonkv.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"jsonkv.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = f"""\
[store]
data_dir = "{data_dir}"
# falsy_is_missing = false   # true: null / false / 0 / "" are treated as absent keys

[audit]
# log_path = "log.txt"

# [server]
# host = "127.0.0.1"
# port = 5000
# owner = "Adam"
"""
    config_path.write_text(content, encoding="utf-8")
    return config_path
