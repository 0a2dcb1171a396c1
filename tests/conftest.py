"""
Pytest configuration and fixtures.
Provides reusable test doubles for the LLM backend, ClickUp and the context file.
"""
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from ticket_assistant.domain.interfaces import ILLMClient, IProjectClient
from ticket_assistant.domain.models import (
    CreatedTask, SearchFilter, TaskPayload, TaskSearchResult
)
from ticket_assistant.infrastructure.context_repository import FileContextRepository
from ticket_assistant.services.extraction_service import ExtractionService
from ticket_assistant.services.heuristic_classifier import HeuristicClassifier
from ticket_assistant.services.intent_router import IntentRouter


class MockLLMClient(ILLMClient):
    """Scripted model backend.

    `replies` maps a model id to the text it returns, or to an exception it
    raises. A callable reply receives the message list.
    """

    def __init__(self, replies: Optional[Dict[str, Any]] = None):
        self.replies = replies or {}
        self.calls: List[Dict[str, Any]] = []

    async def complete(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 1000
    ) -> str:
        self.calls.append({"model": model, "messages": messages, "temperature": temperature})
        reply = self.replies[model]
        if callable(reply):
            reply = reply(messages)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def list_models(self, limit: int = 5) -> List[Dict[str, Any]]:
        return [{"id": model} for model in list(self.replies)[:limit]]

    @property
    def models_called(self) -> List[str]:
        return [call["model"] for call in self.calls]


class MockProjectClient(IProjectClient):
    """Mock ClickUp client recording every call."""

    def __init__(self):
        self.create_mock = AsyncMock(
            return_value=CreatedTask(id="abc123", name="Created", url="https://app.clickup.com/t/abc123")
        )
        self.search_mock = AsyncMock(
            return_value=TaskSearchResult(tasks=[{"id": "t1", "name": "Login bug"}], total_found=1)
        )

    async def create_task(self, payload: TaskPayload) -> CreatedTask:
        return await self.create_mock(payload)

    async def search_tasks(self, search_filter: SearchFilter, team_id: str) -> TaskSearchResult:
        return await self.search_mock(search_filter, team_id)


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed, timezone-aware 'now' for date-window assertions."""
    return datetime(2024, 5, 15, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def classifier() -> HeuristicClassifier:
    return HeuristicClassifier()


@pytest.fixture
def mock_project_client() -> MockProjectClient:
    return MockProjectClient()


@pytest.fixture
def heuristic_extraction(classifier: HeuristicClassifier) -> ExtractionService:
    """Extraction service with no model configured."""
    return ExtractionService(sequencer=None, classifier=classifier)


@pytest.fixture
def heuristic_router(
    heuristic_extraction: ExtractionService,
    mock_project_client: MockProjectClient
) -> IntentRouter:
    return IntentRouter(
        extraction=heuristic_extraction,
        project_client=mock_project_client,
        default_team_id="team-1",
    )


@pytest.fixture
def context_repository(tmp_path) -> FileContextRepository:
    return FileContextRepository(tmp_path / "context" / "company-context.md")


@pytest.fixture
def sample_ticket_json() -> str:
    return json.dumps({
        "title": "Fix login button 500 error",
        "type": "bug",
        "priority": "high",
        "summary": "Clicking login returns a server error.",
        "description": "The login button throws a 500 error when clicked.",
        "stepsToReproduce": ["Open /login", "Click the login button"],
        "expectedBehavior": "User is logged in",
        "actualBehavior": "HTTP 500",
        "acceptanceCriteria": ["Login succeeds", "No 500 in logs"],
        "technicalNotes": None,
        "testingNotes": "Add a regression test",
        "tags": ["auth", "frontend"],
        "estimatedComplexity": "medium",
        "estimatedHours": 3,
        "dependencies": None,
        "affectedComponents": ["auth-service"],
    })


@pytest.fixture
def sample_intent_json() -> str:
    return json.dumps({
        "action": "search",
        "confidence": 0.92,
        "reasoning": "User asks for existing tickets",
        "priority": None,
        "assignee": None,
    })
