from unittest import mock

import pytest

from marginalia.cli import build_app, main
from marginalia.themes import ThemeError


@pytest.fixture
def themes(tmp_path):
    directory = tmp_path / "themes"
    directory.mkdir()
    (directory / "base.css").write_text("base")
    (directory / "terminal.css").write_text("terminal")
    (directory / "classic.css").write_text("classic")
    return directory


def _env(tmp_path, themes, **extra):
    env = {"TOKEN": "token", "THEMES_DIR": str(themes), "DB_PATH": str(tmp_path / "db" / "m.sqlite")}
    env.update(extra)
    return env


def test_token_required(tmp_path, themes):
    env = _env(tmp_path, themes)
    del env["TOKEN"]
    with pytest.raises(ValueError, match="TOKEN is required"):
        build_app(env)


def test_build_app_from_environment(tmp_path, themes):
    app = build_app(_env(tmp_path, themes, OWNER="Ann", THEME="classic", AUTH_RATE_LIMIT="true"))
    try:
        assert app.owner == "Ann"
        assert app.theme == "classic\nbase"
        assert app.auth_config.token == "token"
        assert app.auth_config.enable_rate_limit is True
        assert app.auth_config.trust_proxy is False
        assert (tmp_path / "db" / "m.sqlite").exists()
        assert app.recommendations.all() == []
    finally:
        app.database.close()


def test_default_theme_and_db_path(tmp_path, themes, monkeypatch):
    monkeypatch.chdir(tmp_path)
    env = {"TOKEN": "token", "THEMES_DIR": str(themes)}
    app = build_app(env)
    try:
        assert app.theme == "terminal\nbase"
        assert (tmp_path / "data" / "marginalia.db").exists()
    finally:
        app.database.close()


def test_proxy_settings(tmp_path, themes):
    env = _env(
        tmp_path, themes, TRUST_PROXY="1", REAL_IP_HEADERS="X-Real-IP, ,X-Forwarded-For",
        TRUSTED_PROXIES="10.0.0.0/8",
    )
    app = build_app(env)
    try:
        assert app.auth_config.real_ip_headers == ("X-Real-IP", "X-Forwarded-For")
        assert [str(n) for n in app.auth_config.trusted_proxy_ranges] == ["10.0.0.0/8"]
    finally:
        app.database.close()


def test_invalid_boolean_rejected(tmp_path, themes):
    with pytest.raises(ValueError):
        build_app(_env(tmp_path, themes, AUTH_RATE_LIMIT="maybe"))


def test_unknown_theme_rejected(tmp_path, themes):
    with pytest.raises(ThemeError, match="failed to load theme"):
        build_app(_env(tmp_path, themes, THEME="missing"))


def test_main_fails_without_token(monkeypatch, tmp_path, themes):
    monkeypatch.delenv("TOKEN", raising=False)
    monkeypatch.setenv("THEMES_DIR", str(themes))
    assert main([]) == 1


def test_main_rejects_bad_port(monkeypatch, tmp_path, themes):
    monkeypatch.setenv("TOKEN", "token")
    monkeypatch.setenv("THEMES_DIR", str(themes))
    monkeypatch.setenv("PORT", "notaport")
    assert main([]) == 1


def test_main_rejects_arguments():
    with pytest.raises(SystemExit) as exc:
        main(["--unknown"])
    assert exc.value.code == 2


def test_main_serves_on_default_port(monkeypatch, tmp_path, themes):
    monkeypatch.setenv("TOKEN", "token")
    monkeypatch.setenv("THEMES_DIR", str(themes))
    monkeypatch.setenv("DB_PATH", str(tmp_path / "m.sqlite"))
    monkeypatch.delenv("PORT", raising=False)
    with mock.patch("marginalia.cli.run_simple") as run:
        assert main([]) == 0
    host, port, _ = run.call_args.args
    assert (host, port) == ("0.0.0.0", 9595)
    assert run.call_args.kwargs == {"threaded": True}