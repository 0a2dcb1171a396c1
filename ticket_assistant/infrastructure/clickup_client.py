"""
Infrastructure layer - ClickUp REST API client.

Hierarchy: team -> space -> folder -> list -> task. Tasks are created in a
list and searched across a team.
"""
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ticket_assistant.core.logging import get_logger
from ticket_assistant.domain.exceptions import ConfigurationMissing, ProjectServiceError
from ticket_assistant.domain.interfaces import IProjectClient
from ticket_assistant.domain.models import (
    SearchFilter, TaskPayload, CreatedTask, TaskSearchResult
)

logger = get_logger(__name__)

TASK_URL = "https://app.clickup.com/t/{task_id}"


class ClickUpClient(IProjectClient):
    """ClickUp API v2 client."""

    def __init__(
        self,
        api_token: Optional[str],
        base_url: str = "https://api.clickup.com/api/v2",
        default_list_id: Optional[str] = None,
        default_team_id: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        if not api_token and client is None:
            raise ConfigurationMissing("CLICKUP_API_TOKEN is required")
        self.base_url = base_url.rstrip("/")
        self.default_list_id = default_list_id
        self.default_team_id = default_team_id
        self.headers = {
            "Authorization": api_token or "",
            "Content-Type": "application/json",
        }
        self.timeout = timeout
        self._client = client
        if not default_list_id:
            logger.warning("CLICKUP_LIST_ID not set. listId must be provided when creating tasks.")

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.timeout
            )
        return self._client

    async def _handle_response(self, response: httpx.Response, action: str) -> Dict[str, Any]:
        """Return the JSON body or raise ProjectServiceError with ClickUp's `err` message."""
        try:
            data = response.json()
        except ValueError:
            data = {"err": response.text}

        if response.status_code >= 400:
            reason = data.get("err") if isinstance(data, dict) else None
            logger.error(f"ClickUp API error ({response.status_code}) while trying to {action}: {data}")
            raise ProjectServiceError(
                f"Failed to {action}: {reason or response.reason_phrase}",
                status_code=response.status_code,
                details=data if isinstance(data, dict) else {"body": data}
            )
        return data

    async def _request(self, method: str, url: str, action: str, **kwargs) -> Dict[str, Any]:
        try:
            client = await self._get_client()
            response = await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"ClickUp network error while trying to {action}: {e}")
            raise ProjectServiceError(f"Failed to {action}: {e}") from e
        return await self._handle_response(response, action)

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Lists and tasks
    # ------------------------------------------------------------------

    async def verify_list_access(self, list_id: str) -> Dict[str, Any]:
        """Fetch list details; fails if the token cannot see the list."""
        logger.info(f"Verifying access to list: {list_id}")
        data = await self._request("GET", f"/list/{list_id}", f"access list {list_id}")
        logger.info(f"List verified: {data.get('name')} (ID: {data.get('id')})")
        return data

    async def create_task(self, payload: TaskPayload) -> CreatedTask:
        list_id = payload.list_id or self.default_list_id
        if not list_id:
            raise ProjectServiceError(
                "List ID is required to create a task. Set CLICKUP_LIST_ID or provide listId."
            )

        logger.info(f"Creating task in list: {list_id}")
        await self.verify_list_access(list_id)

        body: Dict[str, Any] = {
            "name": payload.name,
            "description": payload.description,
            "priority": payload.priority_code,
            "status": payload.status,
            "assignees": await self._resolve_assignees(payload.assignees),
            "tags": payload.tags,
            "due_date": payload.due_date,
        }
        body = {key: value for key, value in body.items() if value is not None}

        task = await self._request("POST", f"/list/{list_id}/task", "create task", json=body)
        if not task.get("id"):
            raise ProjectServiceError("Failed to create task: response has no task id", details=task)

        task_id = str(task["id"])
        task["url"] = TASK_URL.format(task_id=task_id)
        logger.info(f"Created ClickUp task {task_id}")
        return CreatedTask(id=task_id, name=task.get("name"), url=task["url"], raw=task)

    async def _resolve_assignees(self, assignees: List[str]) -> List[int]:
        """Numeric ids pass through; names are looked up among team members."""
        ids: List[int] = []
        names: List[str] = []
        for assignee in assignees:
            if str(assignee).isascii() and str(assignee).isdigit():
                ids.append(int(assignee))
            else:
                names.append(assignee)

        if names:
            if self.default_team_id:
                ids.extend(await self.lookup_user_ids(names))
            else:
                logger.warning(f"Cannot resolve assignees {names} without CLICKUP_TEAM_ID")
        return ids

    # ------------------------------------------------------------------
    # Team members
    # ------------------------------------------------------------------

    async def get_team_members(self, team_id: Optional[str] = None) -> List[Dict[str, Any]]:
        team_id = team_id or self.default_team_id
        if not team_id:
            raise ProjectServiceError("Team ID is required to get team members")

        logger.info(f"Getting team members for team: {team_id}")
        data = await self._request("GET", f"/team/{team_id}", "get team members")
        return (data.get("team") or {}).get("members") or []

    async def lookup_user_ids(self, usernames: List[str], team_id: Optional[str] = None) -> List[int]:
        """Map names, usernames or emails to ClickUp user ids. Unknown names are skipped."""
        if not usernames:
            return []

        members = await self.get_team_members(team_id)
        user_ids: List[int] = []
        for username in usernames:
            member = next((m for m in members if _member_matches(m.get("user") or {}, username)), None)
            if member is None:
                available = ", ".join(_member_label(m.get("user") or {}) for m in members)
                logger.warning(f"User not found: {username}. Available users: {available}")
                continue
            user = member["user"]
            user_ids.append(int(user["id"]))
            logger.info(f"Found user: {username} -> {_member_label(user)} (ID: {user['id']})")
        return user_ids

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_tasks(self, search_filter: SearchFilter, team_id: str) -> TaskSearchResult:
        """Search a team's tasks. `limit` only truncates the returned page."""
        team_id = team_id or self.default_team_id
        if not team_id:
            raise ProjectServiceError("Team ID is required for searching tasks")

        assignee_ids: List[int] = []
        if search_filter.assignees:
            assignee_ids = await self.lookup_user_ids(search_filter.assignees, team_id)
            logger.info(f"Converted assignees {search_filter.assignees} to IDs: {assignee_ids}")

        params = build_search_params(search_filter, assignee_ids)
        logger.info(
            f"Searching tasks in team {team_id} with query: \"{search_filter.query}\""
            + (f" (limit: {search_filter.limit})" if search_filter.limit else "")
        )
        data = await self._request("GET", f"/team/{team_id}/task", "search tasks", params=params)

        tasks = data.get("tasks") or []
        if search_filter.limit:
            tasks = tasks[:search_filter.limit]

        return TaskSearchResult(
            tasks=tasks,
            last_page=bool(data.get("last_page", False)),
            total_found=len(tasks),
            limit_applied=search_filter.limit,
        )


def build_search_params(
    search_filter: SearchFilter,
    assignee_ids: Optional[List[int]] = None,
    page: int = 0,
    include_subtasks: bool = False
) -> List[Tuple[str, str]]:
    """Query parameters for GET /team/{team_id}/task. Repeated keys use the `[]` suffix."""
    params: List[Tuple[str, str]] = []
    if search_filter.query:
        params.append(("query", search_filter.query))
    params.extend(("assignees[]", str(i)) for i in assignee_ids or [])
    params.extend(("statuses[]", s) for s in search_filter.statuses)
    params.extend(("tags[]", t) for t in search_filter.tags)

    for name in (
        "date_created_gt", "date_created_lt", "date_updated_gt", "date_updated_lt",
        "due_date_gt", "due_date_lt",
    ):
        value = getattr(search_filter, name)
        if value:
            params.append((name, str(value)))

    params.append(("include_subtasks", str(include_subtasks).lower()))
    params.append(("page", str(page)))
    params.append(("order_by", search_filter.order_by))
    params.append(("reverse", str(search_filter.reverse).lower()))
    return params


def _member_matches(user: Dict[str, Any], term: str) -> bool:
    search = term.lower()
    email = (user.get("email") or "").lower()
    username = (user.get("username") or "").lower()
    first = (user.get("firstname") or "").lower()
    last = (user.get("lastname") or "").lower()
    full = f"{first} {last}".strip()
    return (
        email == search
        or search in email
        or username == search
        or first == search
        or last == search
        or full == search
        or (bool(full) and search in full)
    )


def _member_label(user: Dict[str, Any]) -> str:
    return (
        user.get("email")
        or user.get("username")
        or f"{user.get('firstname') or ''} {user.get('lastname') or ''}".strip()
    )
