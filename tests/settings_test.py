import pytest

from blackduck_mcp.settings import Settings


def test_url_trailing_slash_removed(monkeypatch):
    monkeypatch.setenv("BLACK_DUCK_URL", "https://bd.example.com/")
    monkeypatch.setenv("BLACK_DUCK_TIMEOUT", "15000")
    s = Settings(_env_file=None)
    assert s.black_duck_url == "https://bd.example.com"
    assert s.timeout_seconds == 15


def test_invalid_url_rejected(monkeypatch):
    monkeypatch.setenv("BLACK_DUCK_URL", "bd.example.com")
    with pytest.raises(ValueError, match="not a valid URL"):
        Settings(_env_file=None)


def test_defaults(monkeypatch):
    for var in ("BLACK_DUCK_URL", "BLACK_DUCK_API_TOKEN", "DEBUG", "MCP_TRANSPORT_MODE"):
        monkeypatch.delenv(var, raising=False)
    s = Settings(_env_file=None)
    assert s.black_duck_url == ""
    assert s.debug is False
    assert s.mcp_transport_mode == "stdio"
