from __future__ import annotations

from pathlib import Path
from typing import Iterable

import httpx
import pytest

from mini_engine.core.config import Settings, get_settings

# Environment variables read by Settings; cleared so a developer shell cannot leak into tests.
SETTINGS_ENV_VARS = (
    "APP_NAME",
    "MINI_ENGINE_ROOT",
    "ENV",
    "MINI_ENGINE_LOG_LEVEL",
    "DATABASE_URL",
    "SESSION_SECRET",
    "SESSION_DOMAIN",
    "SESSION_NAME",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch):
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://testserver",
        "http://localhost",
        "http://127.0.0.1",
        "/",  # Relative paths (ASGI test client)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)


@pytest.fixture
def app_root(tmp_path: Path) -> Path:
    """Application root with an empty ``views/`` directory."""
    (tmp_path / "views").mkdir()
    return tmp_path


@pytest.fixture
def write_view(app_root: Path):
    """Create ``views/<name>`` under the application root."""

    def _write(name: str, content: str) -> Path:
        path = app_root / "views" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def settings(app_root: Path) -> Settings:
    """Development settings with a session secret and no database."""
    return Settings(
        MINI_ENGINE_ROOT=str(app_root),
        SESSION_SECRET="test-secret",
        ENV="development",
    )


@pytest.fixture
def production_settings(app_root: Path) -> Settings:
    return Settings(
        MINI_ENGINE_ROOT=str(app_root),
        SESSION_SECRET="test-secret",
        ENV="production",
    )
