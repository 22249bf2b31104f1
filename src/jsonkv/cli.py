"""jsonkv CLI — key-value store over JSON documents, with an audit log.

Commands:
    jsonkv init [DATA_DIR]          create jsonkv.toml + data dir
    jsonkv get FILE KEY             print a value
    jsonkv set FILE KEY VALUE       set a value (--json to parse VALUE)
    jsonkv remove FILE KEY          delete a key
    jsonkv create FILE              create an empty document
    jsonkv delete FILE              delete a document
    jsonkv serve                    start the HTTP adapter

Every command except init/serve appends one line to the audit log.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from jsonkv.config import JsonKVConfig, init_config, load_config
from jsonkv.models import Outcome, reject_constant
from jsonkv.store import RecordStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg() -> JsonKVConfig:
    try:
        return load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def _store() -> RecordStore:
    return RecordStore.from_config(_load_cfg())


def _report(outcome: Outcome, text: str | None = None) -> None:
    """Echo a successful outcome, or fail with the audit message."""
    if outcome.audit_error:
        click.echo(f"warning: audit log not written: {outcome.audit_error}", err=True)
    if not outcome.ok:
        raise click.ClickException(outcome.message)
    click.echo(text if text is not None else outcome.message)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="jsonkv")
def cli() -> None:
    """jsonkv — key-value store over JSON files."""


@cli.command()
@click.argument("data_dir", required=False, default=".")
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
def init(data_dir: str, root: str) -> None:
    """Create jsonkv.toml and the data directory."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, data_dir=data_dir)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("jsonkv.toml already exists — skipping init")

    cfg = load_config(root_path)
    cfg.ensure_dirs()
    click.echo(f"Data dir : {cfg.store.data_dir}")
    click.echo(f"Audit log: {cfg.audit.log_path}")


# ---------------------------------------------------------------------------
# Document operations
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("file")
@click.argument("key")
def get(file: str, key: str) -> None:
    """Print the value of KEY in FILE."""
    _report(_store().get(file, key))


@cli.command("set")
@click.argument("file")
@click.argument("key")
@click.argument("value")
@click.option("--json", "as_json", is_flag=True, help="Parse VALUE as JSON instead of storing a string")
def set_cmd(file: str, key: str, value: str, as_json: bool) -> None:
    """Set KEY to VALUE in FILE.

    \b
    jsonkv set user.json username scoot
    jsonkv set user.json age 31 --json
    """
    parsed: Any = value
    if as_json:
        try:
            parsed = json.loads(value, parse_constant=reject_constant)
        except ValueError as exc:
            raise click.BadParameter(f"not valid JSON: {exc}", param_hint="VALUE") from exc
    _report(_store().set(file, key, parsed))


@cli.command()
@click.argument("file")
@click.argument("key")
def remove(file: str, key: str) -> None:
    """Delete KEY from FILE."""
    _report(_store().remove(file, key))


@cli.command()
@click.argument("file")
def create(file: str) -> None:
    """Create FILE containing an empty object."""
    _report(_store().create_file(file))


@cli.command()
@click.argument("file")
def delete(file: str) -> None:
    """Delete FILE."""
    _report(_store().delete_file(file))


# ---------------------------------------------------------------------------
# jsonkv serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", "-b", default=None, help="Bind address (default: jsonkv.toml [server].host or 127.0.0.1)")
@click.option("--port", "-p", default=None, type=int, help="Port (default: jsonkv.toml [server].port or 5000)")
def serve(host: str | None, port: int | None) -> None:
    """Start the HTTP adapter.

    \b
    jsonkv serve                  # http://127.0.0.1:5000
    jsonkv serve --port 8080
    """
    cfg = _load_cfg()
    from jsonkv.web import serve as _web_serve

    _web_serve(cfg, host=host or cfg.server.host, port=port if port is not None else cfg.server.port)


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
