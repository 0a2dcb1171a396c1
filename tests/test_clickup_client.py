"""
Tests for ClickUpClient against an httpx.MockTransport.
"""
import json
from typing import Callable, List

import httpx
import pytest

from ticket_assistant.domain.exceptions import ProjectServiceError
from ticket_assistant.domain.models import SearchFilter, TaskPayload
from ticket_assistant.infrastructure.clickup_client import ClickUpClient, build_search_params

BASE_URL = "https://api.clickup.com/api/v2"

TEAM_MEMBERS = {
    "team": {
        "id": "team-1",
        "members": [
            {"user": {"id": 101, "username": "john", "email": "john.doe@example.com"}},
            {"user": {"id": 102, "username": "msmith", "email": "maria@example.com",
                      "firstname": "Maria", "lastname": "Smith"}},
        ],
    }
}


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    **kwargs
) -> ClickUpClient:
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return ClickUpClient(api_token="pk_test", client=http, **kwargs)


class Recorder:
    """Routes requests by (method, path) and keeps them for assertions."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"err": "Route not found", "ECODE": "APP_001"})
        status, body = self.routes[key]
        return httpx.Response(status, json=body)


@pytest.mark.unit
@pytest.mark.asyncio
class TestCreateTask:

    async def test_verifies_list_then_creates(self):
        recorder = Recorder({
            ("GET", "/api/v2/list/L1"): (200, {"id": "L1", "name": "Backlog"}),
            ("POST", "/api/v2/list/L1/task"): (200, {"id": "abc123", "name": "Fix login"}),
        })
        client = make_client(recorder, default_list_id="L1")

        task = await client.create_task(
            TaskPayload(name="Fix login", description="## Summary\nx", priority="high", tags=["bug"])
        )

        assert task.id == "abc123"
        assert task.url == "https://app.clickup.com/t/abc123"
        assert [r.method for r in recorder.requests] == ["GET", "POST"]

        body = json.loads(recorder.requests[1].content)
        assert body["priority"] == 2
        assert body["status"] == "open"
        assert body["tags"] == ["bug"]
        assert "due_date" not in body

    async def test_payload_list_id_wins(self):
        recorder = Recorder({
            ("GET", "/api/v2/list/L2"): (200, {"id": "L2", "name": "Sprint"}),
            ("POST", "/api/v2/list/L2/task"): (200, {"id": "t9"}),
        })
        client = make_client(recorder, default_list_id="L1")

        task = await client.create_task(TaskPayload(name="x", description="y", list_id="L2"))

        assert task.id == "t9"

    async def test_missing_list_id(self):
        client = make_client(Recorder({}))
        with pytest.raises(ProjectServiceError) as exc_info:
            await client.create_task(TaskPayload(name="x", description="y"))
        assert "List ID is required" in exc_info.value.message

    async def test_list_access_denied(self):
        recorder = Recorder({
            ("GET", "/api/v2/list/L1"): (401, {"err": "Token invalid", "ECODE": "OAUTH_025"}),
        })
        client = make_client(recorder, default_list_id="L1")

        with pytest.raises(ProjectServiceError) as exc_info:
            await client.create_task(TaskPayload(name="x", description="y"))

        assert exc_info.value.status_code == 401
        assert "Token invalid" in exc_info.value.message
        assert len(recorder.requests) == 1

    async def test_assignee_names_resolved(self):
        recorder = Recorder({
            ("GET", "/api/v2/team/team-1"): (200, TEAM_MEMBERS),
            ("GET", "/api/v2/list/L1"): (200, {"id": "L1", "name": "Backlog"}),
            ("POST", "/api/v2/list/L1/task"): (200, {"id": "t1"}),
        })
        client = make_client(recorder, default_list_id="L1", default_team_id="team-1")

        await client.create_task(TaskPayload(name="x", description="y", assignees=["maria", "555"]))

        body = json.loads(recorder.requests[-1].content)
        assert sorted(body["assignees"]) == [102, 555]

    async def test_non_ascii_digits_are_not_user_ids(self):
        recorder = Recorder({
            ("GET", "/api/v2/list/L1"): (200, {"id": "L1", "name": "Backlog"}),
            ("POST", "/api/v2/list/L1/task"): (200, {"id": "t1"}),
        })
        client = make_client(recorder, default_list_id="L1")

        await client.create_task(TaskPayload(name="x", description="y", assignees=["\u00b2", "\u0663", "7"]))

        body = json.loads(recorder.requests[-1].content)
        assert body["assignees"] == [7]

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler, default_list_id="L1")
        with pytest.raises(ProjectServiceError):
            await client.create_task(TaskPayload(name="x", description="y"))


@pytest.mark.unit
@pytest.mark.asyncio
class TestSearchTasks:

    async def test_limit_truncates_page(self):
        tasks = [{"id": str(i)} for i in range(50)]
        recorder = Recorder({("GET", "/api/v2/team/team-1/task"): (200, {"tasks": tasks, "last_page": True})})
        client = make_client(recorder)

        result = await client.search_tasks(SearchFilter(query="bugs", limit=10), "team-1")

        assert len(result.tasks) == 10
        assert result.total_found == 10
        assert result.limit_applied == 10
        assert result.last_page is True
        # the upstream request is not limited
        assert "limit" not in recorder.requests[0].url.params

    async def test_no_limit_returns_everything(self):
        tasks = [{"id": str(i)} for i in range(50)]
        recorder = Recorder({("GET", "/api/v2/team/team-1/task"): (200, {"tasks": tasks})})
        client = make_client(recorder)

        result = await client.search_tasks(SearchFilter(query="bugs"), "team-1")

        assert result.total_found == 50
        assert result.limit_applied is None
        assert result.last_page is False

    async def test_query_parameters(self):
        recorder = Recorder({
            ("GET", "/api/v2/team/team-1"): (200, TEAM_MEMBERS),
            ("GET", "/api/v2/team/team-1/task"): (200, {"tasks": []}),
        })
        client = make_client(recorder)
        search_filter = SearchFilter(
            query="bugs",
            assignees=["john"],
            statuses=["open", "in progress"],
            date_created_gt=1715000000000,
            order_by="created",
            reverse=False,
        )

        await client.search_tasks(search_filter, "team-1")

        params = recorder.requests[-1].url.params
        assert params["query"] == "bugs"
        assert params.get_list("assignees[]") == ["101"]
        assert params.get_list("statuses[]") == ["open", "in progress"]
        assert params["date_created_gt"] == "1715000000000"
        assert params["order_by"] == "created"
        assert params["reverse"] == "false"
        assert params["include_subtasks"] == "false"
        assert params["page"] == "0"

    async def test_upstream_failure(self):
        recorder = Recorder({("GET", "/api/v2/team/team-1/task"): (500, {"err": "Internal error"})})
        client = make_client(recorder)

        with pytest.raises(ProjectServiceError) as exc_info:
            await client.search_tasks(SearchFilter(query="bugs"), "team-1")

        assert exc_info.value.status_code == 500


@pytest.mark.unit
@pytest.mark.asyncio
class TestTeamMembers:

    @pytest.mark.parametrize("name,expected", [
        ("john", [101]),
        ("JOHN.DOE@EXAMPLE.COM", [101]),
        ("Maria", [102]),
        ("smith", [102]),
        ("maria smith", [102]),
        ("nobody-here", []),
    ])
    async def test_lookup_user_ids(self, name, expected):
        recorder = Recorder({("GET", "/api/v2/team/team-1"): (200, TEAM_MEMBERS)})
        client = make_client(recorder)

        assert await client.lookup_user_ids([name], "team-1") == expected

    async def test_lookup_without_names_skips_request(self):
        recorder = Recorder({})
        client = make_client(recorder)

        assert await client.lookup_user_ids([], "team-1") == []
        assert recorder.requests == []


@pytest.mark.unit
class TestBuildSearchParams:

    def test_minimal_filter(self):
        params = build_search_params(SearchFilter(query=""))
        assert params == [
            ("include_subtasks", "false"),
            ("page", "0"),
            ("order_by", "updated"),
            ("reverse", "true"),
        ]
