import dataclasses
import re

import pytest
from werkzeug.test import Client

from marginalia.auth import AuthConfig
from marginalia.database import open_database
from marginalia.extract import Article
from marginalia.feed import FeedService
from marginalia.recommendations import RecommendationService, Repository
from marginalia.server import App, create_app, owner_title

AUTH = {"Authorization": "Bearer token"}
URL = "https://example.com/article"


def _extract(url):
    return Article(
        title="Example <b>title</b>",
        byline="Ann",
        excerpt="Short",
        content="<p>Body</p>",
        site_name="Example",
    )


@pytest.fixture
def setup(tmp_path):
    conn = open_database(tmp_path / "db.sqlite")
    repo = Repository(conn)
    service = RecommendationService(repo, None, _extract)
    app = App(
        auth_config=AuthConfig(token="token"),
        database=conn,
        owner="",
        theme="body{color:red}",
        feed=FeedService(service),
        recommendations=service,
        cache_icon='<svg id="cache-icon"></svg>',
    )
    yield app, repo
    conn.close()


@pytest.fixture
def client(setup):
    app, _ = setup
    return Client(create_app(app))


def test_owner_title():
    assert owner_title("") == "Marginalia"
    assert owner_title("James") == "James' Marginalia"
    assert owner_title("Ann") == "Ann's Marginalia"


def test_options_short_circuits_with_cors(client):
    resp = client.open("/anything", method="OPTIONS")
    assert resp.status_code == 204
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"


def test_empty_list_page(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == "text/html; charset=utf-8"
    body = resp.get_data(as_text=True)
    assert "Nothing here yet." in body
    assert "<title>Marginalia</title>" in body
    assert "body{color:red}" in body


def test_add_requires_token(client):
    resp = client.post("/recommend", json={"url": URL})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "unauthorized"}
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_delete_requires_token_before_id_check(client):
    resp = client.delete("/recommend/abc")
    assert resp.status_code == 401


def test_add_then_list(client):
    resp = client.post("/recommend", json={"url": URL}, headers=AUTH)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["title"] == "Example <b>title</b>"
    assert isinstance(body["id"], int)

    page = client.get("/").get_data(as_text=True)
    assert f'href="{URL}"' in page
    assert "Example &lt;b&gt;title&lt;/b&gt;" in page
    assert "Ann · Example · " in page
    assert '<svg id="cache-icon"></svg>' in page
    assert "https://web.archive.org/web/" in page


def test_duplicate_add_conflicts(client):
    client.post("/recommend", json={"url": URL}, headers=AUTH)
    resp = client.post("/recommend", json={"url": URL}, headers=AUTH)
    assert resp.status_code == 409
    assert resp.get_json() == {"error": "url already exists"}


@pytest.mark.parametrize("data", ["not json", '{"url": ""}', '{"url": 5}', "[]", ""])
def test_bad_add_body(client, data):
    resp = client.post("/recommend", data=data, headers=AUTH)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "missing or invalid url"}


def test_delete_flow(client):
    rec_id = client.post("/recommend", json={"url": URL}, headers=AUTH).get_json()["id"]
    resp = client.delete(f"/recommend/{rec_id}", headers=AUTH)
    assert resp.status_code == 204
    assert resp.data == b""
    again = client.delete(f"/recommend/{rec_id}", headers=AUTH)
    assert again.status_code == 404
    assert again.get_json() == {"error": "not found"}


def test_delete_invalid_id(client):
    resp = client.delete("/recommend/abc", headers=AUTH)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "invalid id"}


def test_rss_feed_and_conditional_requests(client):
    client.post("/recommend", json={"url": URL}, headers=AUTH)
    resp = client.get("/rss")
    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == "application/rss+xml"
    assert resp.headers["Cache-Control"] == "no-store, must-revalidate"
    etag = resp.headers["ETag"]
    assert re.fullmatch(r'"[0-9a-f]{16}"', etag)
    assert URL.encode() in resp.data
    assert resp.data.startswith(b'<?xml version="1.0" encoding="UTF-8"?>')

    assert client.get("/rss", headers={"If-None-Match": etag}).status_code == 304
    last_modified = resp.headers["Last-Modified"]
    assert client.get("/rss", headers={"If-Modified-Since": last_modified}).status_code == 304
    old = "Mon, 01 Jan 2001 00:00:00 GMT"
    assert client.get("/rss", headers={"If-Modified-Since": old}).status_code == 200


def test_unsafe_url_scheme_is_filtered(setup):
    app, repo = setup
    repo.insert("javascript:alert(1)", "Bad", "", "", "", "")
    page = Client(create_app(app)).get("/").get_data(as_text=True)
    assert 'href="#ZgotmplZ"' in page
    assert 'href="javascript:' not in page


def test_unknown_path_and_method(client):
    assert client.get("/missing").status_code == 404
    resp = client.delete("/rss")
    assert resp.status_code == 405
    assert "GET" in resp.headers["Allow"]


def test_rate_limit_blocks_after_failures(setup):
    app, _ = setup
    limited = dataclasses.replace(app, auth_config=AuthConfig(token="token", enable_rate_limit=True))
    client = Client(create_app(limited))
    bad = {"Authorization": "Bearer placeholder"}
    statuses = [client.post("/recommend", json={"url": URL}, headers=bad).status_code for _ in range(5)]
    assert statuses == [401, 401, 401, 401, 429]
    resp = client.post("/recommend", json={"url": URL}, headers=AUTH)
    assert resp.status_code == 429
    assert resp.get_json() == {"error": "too many failed authentication attempts"}


def test_owner_title_used_on_page(setup):
    app, _ = setup
    page = Client(create_app(dataclasses.replace(app, owner="Ann"))).get("/").get_data(as_text=True)
    assert "<h1>Ann&#39;s Marginalia</h1>" in page