import json
import os
import tempfile
from pathlib import Path

_DB_DIR = tempfile.mkdtemp(prefix="committee-portal-tests-")
os.environ["APP_DATABASE_URL"] = f"sqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ["APP_ENV"] = "test"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from app.core.database import app_engine, register_models  # noqa: E402
from app.core.llm.base import BaseLLM  # noqa: E402
from app.core.llm.schemas import LLMResponse, ToolCall  # noqa: E402
from app.main import app  # noqa: E402
from app.modules.assistant.dependencies import (  # noqa: E402
    get_orchestrator,
    get_translation_service,
)
from app.modules.assistant.service import (  # noqa: E402
    create_orchestrator,
    create_translation_service,
)

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}
DEFAULT_USAGE = {"prompt_tokens": 120, "completion_tokens": 40, "total_tokens": 160}


class FakeLLM(BaseLLM):
    """Replays scripted responses; an Exception in the script is raised instead."""

    provider = "openai"
    model = "gpt-5-mini"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls: list[dict] = []

    def generate(self, messages, config=None, tools=None):
        self.calls.append({"messages": messages, "config": config, "tools": tools})
        if not self.responses:
            raise AssertionError("No scripted response left")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def tool_response(name: str, arguments, usage: dict | None = None) -> LLMResponse:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments, ensure_ascii=False)
    return LLMResponse(
        tool_calls=[ToolCall(name=name, arguments=raw)],
        usage=dict(usage or DEFAULT_USAGE),
        provider="openai",
        model="gpt-5-mini",
        finish_reason="tool_calls",
    )


def text_response(text: str, usage: dict | None = None) -> LLMResponse:
    return LLMResponse(
        text=text,
        usage=dict(usage or DEFAULT_USAGE),
        provider="openai",
        model="gpt-5-mini",
        finish_reason="stop",
    )


@pytest.fixture()
def db_engine():
    register_models()
    SQLModel.metadata.create_all(app_engine)
    yield app_engine
    SQLModel.metadata.drop_all(app_engine)


@pytest.fixture()
def fake_llm():
    return FakeLLM()


@pytest.fixture()
def translation_llm():
    return FakeLLM()


@pytest.fixture()
def client(db_engine, fake_llm, translation_llm):
    app.dependency_overrides[get_orchestrator] = lambda: create_orchestrator(
        llm=fake_llm,
        translation_llm=translation_llm,
    )
    app.dependency_overrides[get_translation_service] = lambda: create_translation_service(
        llm=translation_llm,
    )
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
