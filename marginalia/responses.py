"""JSON response helpers and response bodies."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from typing import Any

from werkzeug.wrappers import Response

from marginalia.errors import ServiceError

_HTML_ESCAPES = str.maketrans(
    {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029"}
)


@dataclass(frozen=True)
class RecommendationAdded:
    """Body returned after a recommendation is created."""

    id: int
    title: str


def json_response(data: Any, code: int) -> Response:
    """A JSON response carrying the given data and status code."""
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        data = dataclasses.asdict(data)
    text = json.dumps(data, ensure_ascii=False, separators=(",", ":")).translate(_HTML_ESCAPES)
    return Response((text + "\n").encode("utf-8"), status=code, content_type="application/json")


def json_error(msg: str, code: int) -> Response:
    """A JSON response of the form {"error": msg}."""
    return json_response({"error": msg}, code)


def error_response(err: BaseException) -> Response:
    """Map a ServiceError to its status; anything else becomes a 500."""
    if isinstance(err, ServiceError):
        return json_error(err.reason, err.code)
    return json_error("internal server error", 500)