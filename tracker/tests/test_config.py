from __future__ import annotations

from pathlib import Path

from loguru import logger

from posture_app.api.client import TrackerApiClient
from posture_app.core.config import Settings, get_settings
from posture_app.core.logging_config import setup_logging


def test_defaults_point_at_local_backend(monkeypatch):
    for name in ("API_HOST", "API_PORT", "API_SCHEME", "DEVIATION_THRESHOLD_DEG", "IMPORT_SELECTION_LIMIT"):
        monkeypatch.delenv(name, raising=False)
    s = Settings()
    assert s.base_url == "http://127.0.0.1:3000"
    assert s.deviation_threshold_deg == 15.0
    assert s.import_selection_limit == 50


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("API_HOST", " 192.168.1.135 ")
    monkeypatch.setenv("API_PORT", "8080")
    monkeypatch.setenv("HTTP_TIMEOUT", "5")
    monkeypatch.setenv("DEVIATION_THRESHOLD_DEG", "10")
    s = Settings()
    assert s.base_url == "http://192.168.1.135:8080"
    assert s.http_timeout == 5.0
    assert s.deviation_threshold_deg == 10.0

    client = TrackerApiClient.from_settings(s)
    assert client.base_url == "http://192.168.1.135:8080"


def test_get_settings_is_cached(monkeypatch):
    get_settings.cache_clear()
    monkeypatch.setenv("API_HOST", "first.local")
    first = get_settings()
    monkeypatch.setenv("API_HOST", "second.local")
    assert get_settings() is first
    get_settings.cache_clear()
    assert get_settings().api_host == "second.local"
    get_settings.cache_clear()


def test_setup_logging_writes_file(tmp_path: Path):
    log_file = tmp_path / "logs" / "tracker.log"
    setup_logging("debug", log_file)
    logger.debug("hello from the tracker")
    logger.remove()
    assert "hello from the tracker" in log_file.read_text(encoding="utf-8")
