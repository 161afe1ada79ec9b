"""Formula microservice: HTTP handler for math extraction from PDF text.

Provides /extract, /render, /normalize, /health, /status, /rules endpoints
using stdlib http.server. Extraction calls share no mutable state, so the
server handles requests on separate threads.

Usage:
    python -m formula_service.main

Environment (or project .env):
    FORMULA_PORT=8770                # HTTP listen port
    FORMULA_LOG_LEVEL=INFO           # Logging level
    FORMULA_MAX_INPUT_CHARS=500000   # Largest accepted text/processed_text
"""

from __future__ import annotations

import json
import logging
import signal
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from formula_service.extractor import extract
from formula_service.models import ParsedFormula, RenderMode
from formula_service.patterns import DEFAULT_RULES, normalize_corrupted_text
from formula_service.render import render
from formula_service.setup._config import (
    get_log_level,
    get_max_input_chars,
    get_port,
)
from formula_service.summary import summarize

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

_start_time: float = 0.0

# Resolved at startup; tests patch it directly
MAX_INPUT_CHARS: int = get_max_input_chars()


class JsonFormatter(logging.Formatter):
    """JSON log formatter for Loki/journald."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "service": "formula-service",
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class FormulaHandler(BaseHTTPRequestHandler):
    """HTTP handler for the formula microservice."""

    def do_POST(self) -> None:
        if self.path == "/extract":
            self._handle_extract()
        elif self.path == "/render":
            self._handle_render()
        elif self.path == "/normalize":
            self._handle_normalize()
        else:
            self._send_error("Not found", "NOT_FOUND", 404)

    def do_GET(self) -> None:
        if self.path == "/health":
            self._handle_health()
        elif self.path == "/status":
            self._handle_status()
        elif self.path == "/rules":
            self._handle_rules()
        else:
            self._send_error("Not found", "NOT_FOUND", 404)

    def _handle_extract(self) -> None:
        data = self._read_json()
        if data is None:
            return

        text = data.get("text")
        if not isinstance(text, str):
            self._send_error("text field must be a string", "INVALID_REQUEST", 400)
            return
        if not self._check_size(text):
            return

        mode = self._parse_mode(data.get("mode"), required=False)
        if mode is False:
            return

        start = time.time()
        result = extract(text)
        summary = summarize(result.formulas)
        response: dict[str, Any] = {
            **result.to_dict(),
            "summary": summary.to_dict(),
        }
        if mode is not None:
            response["rendered"] = render(
                result.processed_text, result.formulas, mode,
            )
        elapsed = int((time.time() - start) * 1000)
        response["time_ms"] = elapsed

        logger.info(
            "extract chars=%d formulas=%d corrupted=%d time_ms=%d",
            len(text), summary.total, summary.corrupted, elapsed,
        )
        self._send_json(response)

    def _handle_render(self) -> None:
        data = self._read_json()
        if data is None:
            return

        processed = data.get("processed_text")
        if not isinstance(processed, str):
            self._send_error(
                "processed_text field must be a string", "INVALID_REQUEST", 400,
            )
            return
        if not self._check_size(processed):
            return

        raw_formulas = data.get("formulas", [])
        if not isinstance(raw_formulas, list):
            self._send_error("formulas must be a list", "INVALID_REQUEST", 400)
            return
        try:
            formulas = [ParsedFormula.from_dict(item) for item in raw_formulas]
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            self._send_error(f"Invalid formula record: {e}", "INVALID_REQUEST", 400)
            return

        mode = self._parse_mode(data.get("mode", RenderMode.PLAIN.value), required=True)
        if mode is False:
            return

        self._send_json({"rendered": render(processed, formulas, mode)})

    def _handle_normalize(self) -> None:
        data = self._read_json()
        if data is None:
            return

        text = data.get("text")
        if not isinstance(text, str):
            self._send_error("text field must be a string", "INVALID_REQUEST", 400)
            return
        if not self._check_size(text):
            return
        self._send_json({"text": normalize_corrupted_text(text)})

    def _handle_health(self) -> None:
        self._send_json({
            "status": "ok",
            "service": "formula-service",
            "uptime_seconds": round(time.time() - _start_time, 1),
            "rules_total": len(DEFAULT_RULES),
        })

    def _handle_status(self) -> None:
        self._send_json({
            "service": "formula-service",
            "version": VERSION,
            "uptime_seconds": round(time.time() - _start_time, 1),
            "max_input_chars": MAX_INPUT_CHARS,
            "render_modes": [m.value for m in RenderMode],
        })

    def _handle_rules(self) -> None:
        self._send_json({
            "rules": [
                {
                    "name": rule.name,
                    "kind": rule.kind,
                    "description": rule.description,
                }
                for rule in DEFAULT_RULES
            ]
        })

    def _parse_mode(self, raw: Any, required: bool) -> RenderMode | None | bool:
        """Return the mode, None when absent and optional, False after an error."""
        if raw is None and not required:
            return None
        try:
            return RenderMode(raw)
        except (ValueError, TypeError):
            self._send_error(
                f"Unknown mode: {raw}",
                "INVALID_MODE", 400,
                {"available": [m.value for m in RenderMode]},
            )
            return False

    def _check_size(self, text: str) -> bool:
        if len(text) <= MAX_INPUT_CHARS:
            return True
        self._send_error(
            f"Input exceeds {MAX_INPUT_CHARS} characters",
            "INPUT_TOO_LARGE", 413,
            {"length": len(text)},
        )
        return False

    def _send_json(self, data: dict, status: int = 200) -> None:
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_error(self, error: str, code: str, status: int = 400,
                    details: dict | None = None) -> None:
        response: dict[str, Any] = {"error": error, "code": code}
        if details:
            response["details"] = details
        self._send_json(response, status)

    def _read_json(self) -> dict | None:
        content_length = int(self.headers.get("Content-Length", 0))
        if content_length == 0:
            self._send_error("Request body is empty", "INVALID_JSON", 400)
            return None
        try:
            body = self.rfile.read(content_length)
            data = json.loads(body)
        except (json.JSONDecodeError, ValueError) as e:
            self._send_error(f"Invalid JSON: {e}", "INVALID_JSON", 400)
            return None
        if not isinstance(data, dict):
            self._send_error("JSON body must be an object", "INVALID_JSON", 400)
            return None
        return data

    def log_message(self, format: str, *args: Any) -> None:
        logger.info("%s %s", self.client_address[0], format % args)


def configure_logging(level: str) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)


def main() -> None:
    """Start the formula microservice."""
    global _start_time, MAX_INPUT_CHARS

    configure_logging(get_log_level())

    port = get_port()
    MAX_INPUT_CHARS = get_max_input_chars()
    _start_time = time.time()

    server = ThreadingHTTPServer(("0.0.0.0", port), FormulaHandler)

    if threading.current_thread() is threading.main_thread():
        def sigterm_handler(signum: int, frame: Any) -> None:
            logger.info("SIGTERM received, shutting down...")
            # shutdown() blocks until serve_forever returns; run it off-thread
            threading.Thread(target=server.shutdown, daemon=True).start()
        signal.signal(signal.SIGTERM, sigterm_handler)

    logger.info(
        "Formula service starting on port %d (%d rules, max_input_chars=%d)",
        port, len(DEFAULT_RULES), MAX_INPUT_CHARS,
    )

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
        logger.info("Formula service stopped")


if __name__ == "__main__":
    main()
