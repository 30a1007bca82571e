import os
import sys

PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from household_hub.config import Settings
from household_hub.db import Database
from household_hub.main import create_app


test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
database = Database(engine=test_engine)


class FakeMessage:
    def __init__(self, content):
        self.content = content


class FakeChoice:
    def __init__(self, content):
        self.message = FakeMessage(content)


class FakeCompletion:
    def __init__(self, content):
        self.choices = [FakeChoice(content)]


class FakeCompletions:
    def __init__(self):
        self.replies = []
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else None
        if isinstance(reply, Exception):
            raise reply
        return FakeCompletion(reply)


class FakeAIClient:
    """Stands in for ``openai.OpenAI``; queue replies on ``completions.replies``."""

    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = self


class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeHTTPSession:
    def __init__(self):
        self.headers = {}
        self.pages = {}
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        if url not in self.pages:
            return FakeResponse("", status_code=404)
        return FakeResponse(self.pages[url])


def reset_database():
    database.drop_all()
    database.init_db()


def build_client(ai_client=None, http_session=None, **settings):
    app = create_app(
        settings=Settings(database_url="sqlite://", **settings),
        database=database,
        ai_client=ai_client,
        http_session=http_session,
    )
    return TestClient(app)


@pytest.fixture(autouse=True)
def setup_db():
    reset_database()
    yield


@pytest.fixture
def ai_client():
    return FakeAIClient()


@pytest.fixture
def http_session():
    return FakeHTTPSession()


@pytest.fixture
def client(ai_client, http_session):
    reset_database()
    return build_client(ai_client=ai_client, http_session=http_session)


@pytest.fixture
def session():
    with Session(test_engine) as session:
        yield session
