import importlib
import json
import sys

import pytest
from fastapi.testclient import TestClient

from conftest import FakeModel
from vetassist.core.agent import AssistantAgent
from vetassist.core.config import Config
from vetassist.core.gemini_service import GeminiService
from vetassist.api.schemas import HealthResponse


@pytest.fixture
def service_module(monkeypatch):
    monkeypatch.setattr(Config, "GEMINI_API_KEY", "test-key")
    if "vetassist.main" in sys.modules:
        return importlib.reload(sys.modules["vetassist.main"])
    return importlib.import_module("vetassist.main")


@pytest.fixture
def api(service_module):
    from vetassist.api import routes

    model = FakeModel(json.dumps({"name": "Luna", "species": "Perro", "medications": []}))
    agent = AssistantAgent(gemini_service=GeminiService(generative_model=model))
    service_module.app.dependency_overrides[routes.get_agent] = lambda: agent
    with TestClient(service_module.app) as test_client:
        yield test_client
    service_module.app.dependency_overrides.clear()


def test_root(api):
    body = api.get("/").json()
    assert body["health"] == "/health"
    assert body["docs"] == "/docs"


def test_health(api):
    response = api.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["model"] == Config.GEMINI_MODEL
    assert body["version"] == "1.0.0"


def test_extract_returns_draft(api):
    response = api.post("/api/v1/extract", json={"message": "Luna, perra de María"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["draft"]["name"] == "Luna"
    assert body["draft"]["assistant_name"] == "Sin Asistente"


def test_extract_rejects_empty_message(api):
    assert api.post("/api/v1/extract", json={"message": ""}).status_code == 422


def test_service_requires_api_key(monkeypatch):
    monkeypatch.setattr(Config, "GEMINI_API_KEY", "")
    sys.modules.pop("vetassist.main", None)
    with pytest.raises(ValueError):
        importlib.import_module("vetassist.main")


def test_health_response_version_defaults_from_config(monkeypatch):
    assert HealthResponse(status="ok", model="m").version == "1.0.0"
    monkeypatch.setattr(Config, "_app_config", {"api": {"version": "2.3.0"}})
    assert HealthResponse(status="ok", model="m").version == "2.3.0"
    assert HealthResponse(status="ok", model="m", version="9").version == "9"
