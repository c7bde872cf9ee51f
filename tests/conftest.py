import pytest

from propviz.app import create_app
from propviz.config.settings import settings
from propviz.utils.cache import geocode_cache

@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep history on disk under tmp and drop vendor keys from the environment"""
    monkeypatch.setattr(settings, "HISTORY_PATH", str(tmp_path / "history.json"))
    monkeypatch.setattr(settings, "HISTORY_LIMIT", 20)
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "")
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "")
    geocode_cache.clear()
    yield
    geocode_cache.clear()

@pytest.fixture
def app():
    return create_app({"TESTING": True, "RATELIMIT_ENABLED": False})

@pytest.fixture
def client(app):
    return app.test_client()
