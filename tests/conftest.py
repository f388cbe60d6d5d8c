"""
Shared fixtures: a throwaway SQLite database and storage directory, the
FastAPI TestClient, signed-in users, and a fake AI manager.
"""
import os
import tempfile
import uuid

_TMP = tempfile.mkdtemp(prefix="edukeeper-tests-")
os.environ["DATABASE_URL_OVERRIDE"] = f"sqlite+aiosqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["STORAGE_DIRECTORY"] = os.path.join(_TMP, "storage")
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["ENABLE_FILE_LOGGING"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SMTP_HOST"] = ""
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"

import pytest
from fastapi.testclient import TestClient

from app import app
from models.models import AiProviderEnum
from services.ai_manager import AIResult, get_ai_manager


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as test_client:
        yield test_client


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:10]}@example.com"


def register_and_login(client: TestClient, role: str = "eleve", prefix: str = "user") -> dict:
    user_data = {
        "email": unique_email(prefix),
        "password": "testpass123",
        "first_name": "Test",
        "last_name": role.capitalize(),
        "role": role,
    }
    response = client.post("/auth/register", json=user_data)
    assert response.status_code == 201, response.text

    response = client.post("/auth/login", json={"email": user_data["email"], "password": user_data["password"]})
    assert response.status_code == 200, response.text
    body = response.json()
    return {
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
        "user": body["user"],
        "token": body["access_token"],
        "email": user_data["email"],
    }


@pytest.fixture
def student(client):
    return register_and_login(client, "eleve", "student")


@pytest.fixture
def other_student(client):
    return register_and_login(client, "eleve", "other")


@pytest.fixture
def teacher(client):
    return register_and_login(client, "enseignant", "teacher")


class FakeAIManager:
    """Returns canned answers in order and records every prompt it receives."""

    def __init__(self, answers=None):
        self.answers = list(answers or [])
        self.calls = []

    async def generate_text(self, prompt, system_instruction=None, temperature=0.7, max_tokens=None, model=None):
        self.calls.append({"prompt": prompt, "system_instruction": system_instruction, "model": model})
        text = self.answers.pop(0) if self.answers else "## Réponse\nContenu généré"
        return AIResult(text=text, provider=AiProviderEnum.OpenAI, model=model or "fake-model")


@pytest.fixture
def fake_ai():
    manager = FakeAIManager()
    app.dependency_overrides[get_ai_manager] = lambda: manager
    yield manager
    app.dependency_overrides.pop(get_ai_manager, None)


@pytest.fixture
def anyio_backend():
    return "asyncio"
