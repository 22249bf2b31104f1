"""Thin HTTP adapter over RecordStore.

Routes:
    GET    /                          → welcome text
    GET    /status                    → {"isUp", "owner", "timestamp"}
    GET    /get?file=&key=            → value (string form)
    PATCH  /set?file=&key=&value=     → "Value set!"
    PATCH  /remove?file=&key=         → "Key removed!"
    POST   /file?file=                → create document ({}), 201
    DELETE /file?file=                → delete document

Store failures come back as JSON {"error": <status>, "message": <audit message>}
with 404 (not found / invalid key), 409 (already exists) or 400 (value that
cannot be stored as JSON).  Bad or missing query parameters, and file paths
that leave the data dir, also get 400.
"""

from __future__ import annotations

import json
import logging
import socketserver
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from jsonkv.audit import now_ms
from jsonkv.models import EXISTS, INVALID_KEY, INVALID_VALUE, NOT_FOUND, Outcome
from jsonkv.store import RecordStore

if TYPE_CHECKING:
    from jsonkv.config import JsonKVConfig

logger = logging.getLogger("jsonkv.web")

WELCOME = "Welcome to the Mainframe"

_STATUS_CODES = {
    NOT_FOUND: 404,
    INVALID_KEY: 404,
    EXISTS: 409,
    INVALID_VALUE: 400,
}


class _BadRequestError(Exception):
    pass


def _param(qs: dict[str, list[str]], name: str) -> str:
    values = qs.get(name)
    if not values:
        raise _BadRequestError(f"missing query parameter: {name}")
    return values[0]


def _file_param(qs: dict[str, list[str]]) -> str:
    """Document path from the query; must stay inside the data dir."""
    file = _param(qs, "file")
    p = PurePosixPath(file)
    if not file or p.is_absolute() or ".." in p.parts or "\\" in file:
        raise _BadRequestError(f"invalid file: {file}")
    return file


# ─── HTTP handler ─────────────────────────────────────────────────────────────

class _Handler(BaseHTTPRequestHandler):
    cfg: JsonKVConfig      # injected via make_handler()
    store: RecordStore

    def do_GET(self) -> None:
        self._dispatch({
            "/": self._index,
            "": self._index,
            "/status": self._status,
            "/get": self._get,
        })

    def do_PATCH(self) -> None:
        self._dispatch({
            "/set": self._set,
            "/remove": self._remove,
        })

    def do_POST(self) -> None:
        self._dispatch({"/file": self._create})

    def do_DELETE(self) -> None:
        self._dispatch({"/file": self._delete})

    def _dispatch(self, routes: dict[str, Any]) -> None:
        parsed = urllib.parse.urlparse(self.path)
        route = routes.get(parsed.path)
        if route is None:
            self._json({"error": "not_found", "message": f"no route: {self.command} {parsed.path}"}, 404)
            return
        qs = urllib.parse.parse_qs(parsed.query, keep_blank_values=True)
        try:
            route(qs)
        except _BadRequestError as exc:
            self._json({"error": "bad_request", "message": str(exc)}, 400)
        except Exception:
            logger.exception("unhandled error: %s %s", self.command, self.path)
            self._json({"error": "internal", "message": "internal server error"}, 500)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    def _index(self, qs: dict[str, list[str]]) -> None:
        self._text(WELCOME, headers={"My-custom-header": "This is a great API"})

    def _status(self, qs: dict[str, list[str]]) -> None:
        self._json({"isUp": True, "owner": self.cfg.server.owner, "timestamp": now_ms()})

    def _get(self, qs: dict[str, list[str]]) -> None:
        outcome = self.store.get(_file_param(qs), _param(qs, "key"))
        self._outcome(outcome, outcome.message)

    def _set(self, qs: dict[str, list[str]]) -> None:
        outcome = self.store.set(_file_param(qs), _param(qs, "key"), _param(qs, "value"))
        self._outcome(outcome, "Value set!")

    def _remove(self, qs: dict[str, list[str]]) -> None:
        outcome = self.store.remove(_file_param(qs), _param(qs, "key"))
        self._outcome(outcome, "Key removed!")

    def _create(self, qs: dict[str, list[str]]) -> None:
        outcome = self.store.create_file(_file_param(qs))
        self._outcome(outcome, "File created!", status=201)

    def _delete(self, qs: dict[str, list[str]]) -> None:
        outcome = self.store.delete_file(_file_param(qs))
        self._outcome(outcome, "File removed!")

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def _outcome(self, outcome: Outcome, body: str, status: int = 200) -> None:
        if outcome.audit_error:
            logger.warning("audit log not written for %s: %s", outcome.file, outcome.audit_error)
        if outcome.ok:
            self._text(body, status)
            return
        code = _STATUS_CODES.get(outcome.status, 500)
        self._json({"error": outcome.status, "message": outcome.message}, code)

    def _text(self, body: str, status: int = 200, headers: dict[str, str] | None = None) -> None:
        self._send(body.encode(), "text/plain; charset=utf-8", status, headers)

    def _json(self, obj: dict[str, Any], status: int = 200) -> None:
        self._send(json.dumps(obj).encode(), "application/json; charset=utf-8", status)

    def _send(self, encoded: bytes, content_type: str, status: int, headers: dict[str, str] | None = None) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(encoded)))
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(encoded)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)


class _ThreadingHTTPServer(socketserver.ThreadingMixIn, HTTPServer):
    daemon_threads = True


def make_handler(cfg: JsonKVConfig, store: RecordStore | None = None) -> type[_Handler]:
    class _Bound(_Handler):
        pass
    _Bound.cfg = cfg
    _Bound.store = store or RecordStore.from_config(cfg)
    return _Bound


def make_server(cfg: JsonKVConfig, host: str, port: int, store: RecordStore | None = None) -> HTTPServer:
    return _ThreadingHTTPServer((host, port), make_handler(cfg, store))


def serve(cfg: JsonKVConfig, host: str, port: int) -> None:
    """Start the HTTP adapter (blocking until Ctrl+C)."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")
    cfg.ensure_dirs()
    server = make_server(cfg, host, port)
    logger.info("listening on http://%s:%d (data=%s, log=%s)", host, port, cfg.store.data_dir, cfg.audit.log_path)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
