"""Flask application factory for the page-size check service.

The ``create_app`` function returns a Flask app with three endpoints:

- ``POST /api/verify`` — check ``trace`` text against ``smaps`` text.
- ``POST /api/ranges`` — parse ``smaps`` text and return its ranges.
- ``GET /api/status`` — report that the service is up.
"""

from __future__ import annotations

from typing import Any

from flask import Flask, Response, jsonify, request

from py_pagecheck.errors import MissingRangeError, PageCheckError, PageSizeMismatchError
from py_pagecheck.logging import Logger, LogLevel
from py_pagecheck.memory.smaps import parse_smaps
from py_pagecheck.trace.parser import parse_trace
from py_pagecheck.verify import Verifier

_HTTP_BAD_REQUEST = 400
_HTTP_UNPROCESSABLE = 422


def _missing(data: Any, *fields: str) -> str | None:
    """Return the first required string field absent from *data*."""
    if not isinstance(data, dict):
        return fields[0]
    for name in fields:
        if not isinstance(data.get(name), str):
            return name
    return None


def _not_bool(data: dict[str, Any], *fields: str) -> str | None:
    """Return the first optional field present in *data* that is not a bool."""
    for name in fields:
        if name in data and not isinstance(data[name], bool):
            return name
    return None


def create_app() -> Flask:
    """Create and configure the Flask application.

    Returns:
        A configured Flask application ready to serve.

    """
    app = Flask(__name__)

    @app.route("/api/verify", methods=["POST"])
    def verify() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Check a trace log against an smaps snapshot.

        Expects JSON body: ``{"smaps": "...", "trace": "...",
        "debug": false, "fail_fast": true}``

        Returns:
            JSON with ``passed``, ``checked``, ``tolerated``,
            ``violations``, and ``log`` fields.

        """
        data = request.get_json(silent=True)
        missing = _missing(data, "smaps", "trace")
        if missing is not None:
            return jsonify({"error": f"Missing '{missing}' field"}), _HTTP_BAD_REQUEST

        not_bool = _not_bool(data, "debug", "fail_fast")
        if not_bool is not None:
            msg = f"'{not_bool}' must be true or false"
            return jsonify({"error": msg}), _HTTP_BAD_REQUEST

        debug = data.get("debug", False)
        logger = Logger(min_level=LogLevel.DEBUG if debug else LogLevel.WARNING)
        try:
            index = parse_smaps(data["smaps"].splitlines(), logger=logger)
        except PageCheckError as e:
            return jsonify({"error": str(e)}), _HTTP_UNPROCESSABLE

        verifier = Verifier(index, logger=logger, fail_fast=data.get("fail_fast", True))
        try:
            verdict = verifier.run(parse_trace(data["trace"].splitlines(), logger=logger))
        except (MissingRangeError, PageSizeMismatchError) as e:
            violations = [str(e)]
        except PageCheckError as e:
            return jsonify({"error": str(e)}), _HTTP_UNPROCESSABLE
        else:
            violations = [str(v) for v in verdict.violations]

        return jsonify(
            {
                "passed": not violations,
                "checked": verifier.checked,
                "tolerated": verifier.tolerated,
                "violations": violations,
                "log": [str(entry) for entry in logger.entries],
            }
        )

    @app.route("/api/ranges", methods=["POST"])
    def ranges() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Parse an smaps snapshot and return its ranges.

        Expects JSON body: ``{"smaps": "..."}``

        """
        data = request.get_json(silent=True)
        missing = _missing(data, "smaps")
        if missing is not None:
            return jsonify({"error": f"Missing '{missing}' field"}), _HTTP_BAD_REQUEST

        try:
            index = parse_smaps(data["smaps"].splitlines())
        except PageCheckError as e:
            return jsonify({"error": str(e)}), _HTTP_UNPROCESSABLE

        return jsonify(
            {
                "ranges": [
                    {
                        "start": f"{r.start:#x}",
                        "end": f"{r.end:#x}",
                        "page_size_kb": r.page_size,
                        "transparent_huge": r.transparent_huge,
                        "explicit_huge": r.explicit_huge,
                    }
                    for r in index
                ]
            }
        )

    @app.route("/api/status")
    def status() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return service status for liveness polling."""
        return jsonify({"status": "ok"})

    return app


def main() -> None:
    """Run the development server.

    This is the ``py-pagecheck-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
