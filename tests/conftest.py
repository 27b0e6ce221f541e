"""Shared fixtures: a fresh store and an app wired to it for every test."""

import pytest
from fastapi.testclient import TestClient

from config import Settings, override_settings
from main import create_app
from storage import MemStorage

ADMIN_PASSWORD = "senha-de-teste"


@pytest.fixture
def test_settings() -> Settings:
    return override_settings(
        environment="testing",
        admin_password=ADMIN_PASSWORD,
        session_secret="test-session-secret",
        seed_sample_data=False,
        log_level="DEBUG",
    )


@pytest.fixture
def storage() -> MemStorage:
    return MemStorage()


@pytest.fixture
def app(test_settings, storage):
    return create_app(settings=test_settings, storage=storage)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def post_payload():
    return {
        "title": "T",
        "content": "C",
        "excerpt": "E",
        "category": "Direito Civil",
        "readTime": "5 min",
    }


@pytest.fixture
def contact_payload():
    return {
        "name": "Maria Souza",
        "email": "maria.souza@gmail.com",
        "phone": "(81) 99999-0000",
        "area": "Direito do Trabalho",
        "message": "Fui demitida sem justa causa e gostaria de orientação.",
    }
