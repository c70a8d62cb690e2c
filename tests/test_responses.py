import json

from marginalia.errors import ServiceError
from marginalia.responses import (
    RecommendationAdded,
    error_response,
    json_error,
    json_response,
)


def test_json_error_body_and_status():
    resp = json_error("unauthorized", 401)
    assert resp.status_code == 401
    assert resp.headers["Content-Type"] == "application/json"
    assert json.loads(resp.get_data()) == {"error": "unauthorized"}


def test_body_ends_with_newline():
    assert json_error("unauthorized", 401).get_data().endswith(b"\n")


def test_html_characters_are_escaped_but_round_trip():
    resp = json_error("<a & b>", 400)
    body = resp.get_data()
    assert b"<" not in body and b">" not in body and b"&" not in body
    assert json.loads(body) == {"error": "<a & b>"}


def test_non_ascii_round_trips():
    resp = json_response({"title": "Über — café"}, 200)
    assert json.loads(resp.get_data().decode("utf-8")) == {"title": "Über — café"}


def test_json_response_with_dataclass():
    resp = json_response(RecommendationAdded(id=7, title="A title"), 201)
    assert resp.status_code == 201
    assert json.loads(resp.get_data()) == {"id": 7, "title": "A title"}


def test_error_response_service_error():
    resp = error_response(ServiceError("not found", 404))
    assert resp.status_code == 404
    assert json.loads(resp.get_data()) == {"error": "not found"}


def test_error_response_other_error():
    resp = error_response(RuntimeError("boom"))
    assert resp.status_code == 500
    assert json.loads(resp.get_data()) == {"error": "internal server error"}