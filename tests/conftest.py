from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

import pytest
import requests

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from vetassist.core.config import Config  # noqa: E402
from vetassist.core.session import Session, SessionStore  # noqa: E402
from vetassist.services.backend_client import BackendClient  # noqa: E402

NOW = datetime(2024, 1, 1, 15, 30)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.content = text.encode("utf-8")

    def json(self):
        return json.loads(self.text)


class FakeHttp:
    """Stands in for requests.Session; replies from a queue and records every call"""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.headers = {}
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def _next(self):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "headers": headers or {}, **kwargs})
        return self._next()

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"method": "POST", "url": url, "headers": headers or {}, "data": data})
        return self._next()


class FakeModelResponse:
    def __init__(self, text: str):
        self.text = text


class FakeModel:
    """Generative model stub: returns canned text or raises"""

    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.prompts = []

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return FakeModelResponse(self.text)


def user_payload(user_id=1, username="mlopez", role="assistant", full_name="María López", **extra):
    data = {"id": user_id, "username": username, "role": role, "full_name": full_name}
    data.update(extra)
    return data


def dose_payload(dose_id, scheduled_time, status="pending", medication_id=10, **extra):
    data = {
        "id": dose_id,
        "medication_id": medication_id,
        "scheduled_time": scheduled_time,
        "status": status,
    }
    data.update(extra)
    return data


def medication_payload(medication_id=10, patient_id=1, doses=None, status="active", **extra):
    data = {
        "id": medication_id,
        "patient_id": patient_id,
        "name": "Amoxicilina",
        "dosage": "50mg",
        "frequency": 8,
        "duration_days": 7,
        "start_time": "2024-01-01T08:00:00",
        "status": status,
        "doses": doses or [],
    }
    data.update(extra)
    return data


def patient_payload(patient_id=1, name="Luna", species="Perro", medications=None, **extra):
    data = {
        "id": patient_id,
        "name": name,
        "species": species,
        "assistant_id": 1,
        "assistant_name": "María López",
        "medications": medications or [],
        "notes": [],
    }
    data.update(extra)
    return data


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    monkeypatch.setattr(Config, "LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr(Config, "OUTPUT_DIR", tmp_path / "results")
    monkeypatch.setattr(Config, "SESSION_PATH", tmp_path / "session.json")


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def backend(http):
    return BackendClient(base_url="http://backend", http=http)


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "session.json")


@pytest.fixture
def session(backend, store):
    return Session(backend, store).load()


@pytest.fixture
def logged_in(session, store):
    def _login(role="assistant", user_id=1):
        from vetassist.types.records import User

        user = User.model_validate(user_payload(user_id=user_id, role=role))
        store.write("tok", user)
        return session.load()

    return _login


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")
