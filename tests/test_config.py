"""Tests for environment-driven configuration."""

from pathlib import Path

from smartcart.config import Config


def test_defaults_are_valid(monkeypatch):
    for name in ("SMARTCART_API_URL", "MAX_NETWORK_RETRIES", "OFFLINE_MODE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    cfg = Config()

    assert cfg.max_network_retries == 3
    assert cfg.offline_mode is False
    assert cfg.validate() == []


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("SMARTCART_API_URL", "https://api.smartcart.example")
    monkeypatch.setenv("OFFLINE_MODE", "yes")
    monkeypatch.setenv("DATA_DIR", "/tmp/sc")
    monkeypatch.setenv("OFFLINE_STORE_FILE", "store.json")
    monkeypatch.setenv("BATCH_STALE_SECONDS", "60")

    cfg = Config()

    assert cfg.api_base_url == "https://api.smartcart.example"
    assert cfg.offline_mode is True
    assert cfg.offline_store_path == Path("/tmp/sc") / "store.json"
    assert cfg.batch_stale_seconds == 60


def test_validate_reports_each_problem():
    cfg = Config(
        api_base_url="ftp://example.com",
        request_timeout_seconds=0,
        max_network_retries=-1,
        category_cache_max_size=0,
        log_level="LOUD",
    )

    errors = cfg.validate()

    assert len(errors) == 5
    assert any("SMARTCART_API_URL" in e for e in errors)
    assert any("LOG_LEVEL" in e for e in errors)
