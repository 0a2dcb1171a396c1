"""
Domain models - Core business entities.

TicketDraft, SearchFilter and Intent are the three structured contracts the
model output is normalized into. They are frozen value objects: created per
request, never mutated, discarded once handed to a collaborator.
Wire names are camelCase aliases of the snake_case attributes.
"""
import math
from typing import List, Dict, Any, Optional, Literal
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

TicketType = Literal["bug", "feature", "task", "improvement", "spike"]
Priority = Literal["urgent", "high", "normal", "low"]
Complexity = Literal["low", "medium", "high"]
OrderBy = Literal["created", "updated", "due_date", "priority"]
Action = Literal["search", "create"]

# ClickUp numeric priority codes
PRIORITY_CODES: Dict[str, int] = {
    "urgent": 1,
    "high": 2,
    "normal": 3,
    "low": 4,
}

# Common LLM spellings -> canonical enum value
TYPE_SYNONYMS: Dict[str, str] = {
    "bug": "bug",
    "defect": "bug",
    "bugfix": "bug",
    "bug_fix": "bug",
    "feature": "feature",
    "story": "feature",
    "user_story": "feature",
    "new_feature": "feature",
    "task": "task",
    "chore": "task",
    "maintenance": "task",
    "improvement": "improvement",
    "enhancement": "improvement",
    "refactor": "improvement",
    "optimization": "improvement",
    "spike": "spike",
    "research": "spike",
    "investigation": "spike",
}

PRIORITY_SYNONYMS: Dict[str, str] = {
    "urgent": "urgent",
    "critical": "urgent",
    "blocker": "urgent",
    "highest": "urgent",
    "p0": "urgent",
    "high": "high",
    "important": "high",
    "major": "high",
    "p1": "high",
    "normal": "normal",
    "medium": "normal",
    "moderate": "normal",
    "p2": "normal",
    "low": "low",
    "minor": "low",
    "lowest": "low",
    "trivial": "low",
    "p3": "low",
}

COMPLEXITY_SYNONYMS: Dict[str, str] = {
    "low": "low",
    "simple": "low",
    "easy": "low",
    "medium": "medium",
    "moderate": "medium",
    "high": "high",
    "complex": "high",
    "hard": "high",
}

ACTION_SYNONYMS: Dict[str, str] = {
    "search": "search",
    "find": "search",
    "list": "search",
    "query": "search",
    "lookup": "search",
    "show": "search",
    "get": "search",
    "create": "create",
    "add": "create",
    "new": "create",
    "make": "create",
}

ORDER_BY_SYNONYMS: Dict[str, str] = {
    "created": "created",
    "date_created": "created",
    "created_at": "created",
    "updated": "updated",
    "date_updated": "updated",
    "updated_at": "updated",
    "modified": "updated",
    "due_date": "due_date",
    "due": "due_date",
    "duedate": "due_date",
    "priority": "priority",
}

NULL_WORDS = {"", "null", "none", "nil", "n/a", "undefined"}


def _enum_key(value: Any) -> str:
    return str(value).strip().lower().replace("-", "_").replace(" ", "_")


def map_synonym(value: Any, table: Dict[str, str]) -> Optional[str]:
    """Map a raw enum value to its canonical form, or None if unknown."""
    if value is None:
        return None
    return table.get(_enum_key(value))


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "\n".join(str(v) for v in value)
    return str(value).strip()


def _as_optional_text(value: Any) -> Optional[str]:
    text = _as_text(value)
    if text.lower() in NULL_WORDS:
        return None
    return text


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return [str(value)]


def _unique(items: List[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


def _as_timestamp(value: Any) -> Optional[int]:
    """Coerce a model-supplied date bound to epoch milliseconds."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return int(value)
        except (OverflowError, ValueError):
            return None
    text = str(value).strip()
    if text.lower() in NULL_WORDS:
        return None
    try:
        return int(float(text))
    except OverflowError:
        return None
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return int(parsed.timestamp() * 1000)


class TicketDraft(BaseModel):
    """Structured engineering ticket extracted from a free-text description."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str = "Untitled Ticket"
    type: TicketType = "task"
    priority: Priority = "normal"
    summary: str = ""
    description: str = ""
    steps_to_reproduce: Optional[List[str]] = Field(default=None, alias="stepsToReproduce")
    expected_behavior: Optional[str] = Field(default=None, alias="expectedBehavior")
    actual_behavior: Optional[str] = Field(default=None, alias="actualBehavior")
    acceptance_criteria: List[str] = Field(default_factory=list, alias="acceptanceCriteria")
    technical_notes: Optional[str] = Field(default=None, alias="technicalNotes")
    testing_notes: Optional[str] = Field(default=None, alias="testingNotes")
    tags: List[str] = Field(default_factory=list)
    estimated_complexity: Optional[Complexity] = Field(default=None, alias="estimatedComplexity")
    estimated_hours: Optional[float] = Field(default=None, ge=0, alias="estimatedHours")
    dependencies: Optional[List[str]] = None
    affected_components: Optional[List[str]] = Field(default=None, alias="affectedComponents")

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v: Any) -> str:
        return _as_text(v) or "Untitled Ticket"

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v: Any) -> str:
        return map_synonym(v, TYPE_SYNONYMS) or "task"

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v: Any) -> str:
        return map_synonym(v, PRIORITY_SYNONYMS) or "normal"

    @field_validator("summary", "description", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator(
        "expected_behavior", "actual_behavior", "technical_notes", "testing_notes",
        mode="before"
    )
    @classmethod
    def _optional_text(cls, v: Any) -> Optional[str]:
        return _as_optional_text(v)

    @field_validator("acceptance_criteria", mode="before")
    @classmethod
    def _criteria(cls, v: Any) -> List[str]:
        return _as_str_list(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            v = v.split(",")
        return _unique(_as_str_list(v))

    @field_validator("steps_to_reproduce", "dependencies", "affected_components", mode="before")
    @classmethod
    def _optional_list(cls, v: Any) -> Optional[List[str]]:
        if v is None:
            return None
        return _as_str_list(v)

    @field_validator("estimated_complexity", mode="before")
    @classmethod
    def _complexity(cls, v: Any) -> Optional[str]:
        return map_synonym(v, COMPLEXITY_SYNONYMS)

    @field_validator("estimated_hours", mode="before")
    @classmethod
    def _hours(cls, v: Any) -> Optional[float]:
        if v is None or isinstance(v, bool):
            return None
        try:
            hours = float(v)
        except (TypeError, ValueError):
            return None
        return hours if math.isfinite(hours) and hours >= 0 else None


class SearchFilter(BaseModel):
    """Structured task-search parameters extracted from a natural-language query."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    query: str = ""
    assignees: List[str] = Field(default_factory=list)
    statuses: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    date_created_gt: Optional[int] = Field(default=None, alias="dateCreatedGt")
    date_created_lt: Optional[int] = Field(default=None, alias="dateCreatedLt")
    date_updated_gt: Optional[int] = Field(default=None, alias="dateUpdatedGt")
    date_updated_lt: Optional[int] = Field(default=None, alias="dateUpdatedLt")
    due_date_gt: Optional[int] = Field(default=None, alias="dueDateGt")
    due_date_lt: Optional[int] = Field(default=None, alias="dueDateLt")
    priority: Optional[Priority] = None
    order_by: OrderBy = Field(default="updated", alias="orderBy")
    reverse: bool = True
    limit: Optional[int] = Field(default=None, gt=0)

    @field_validator("query", mode="before")
    @classmethod
    def _query(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("assignees", "statuses", "tags", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> List[str]:
        return _unique(_as_str_list(v))

    @field_validator(
        "date_created_gt", "date_created_lt", "date_updated_gt", "date_updated_lt",
        "due_date_gt", "due_date_lt",
        mode="before"
    )
    @classmethod
    def _timestamps(cls, v: Any) -> Optional[int]:
        return _as_timestamp(v)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v: Any) -> Optional[str]:
        return map_synonym(v, PRIORITY_SYNONYMS)

    @field_validator("order_by", mode="before")
    @classmethod
    def _order_by(cls, v: Any) -> str:
        return map_synonym(v, ORDER_BY_SYNONYMS) or "updated"

    @field_validator("reverse", mode="before")
    @classmethod
    def _reverse(cls, v: Any) -> Any:
        return True if v is None else v

    @field_validator("limit", mode="before")
    @classmethod
    def _limit(cls, v: Any) -> Optional[int]:
        if v is None or isinstance(v, bool):
            return None
        try:
            limit = int(float(v))
        except (OverflowError, TypeError, ValueError):
            return None
        return limit if limit > 0 else None


class Intent(BaseModel):
    """Classified user goal for a single natural-language prompt."""
    model_config = ConfigDict(frozen=True)

    action: Action
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    reasoning: str = ""
    priority: Optional[Priority] = None
    assignee: Optional[str] = None

    @field_validator("action", mode="before")
    @classmethod
    def _action(cls, v: Any) -> Any:
        # Unknown actions are left as-is so validation rejects them.
        return map_synonym(v, ACTION_SYNONYMS) or v

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> float:
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.7
        if math.isnan(value):
            return 0.7
        return min(max(value, 0.0), 1.0)

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v: Any) -> Optional[str]:
        return map_synonym(v, PRIORITY_SYNONYMS)

    @field_validator("assignee", mode="before")
    @classmethod
    def _assignee(cls, v: Any) -> Optional[str]:
        text = _as_optional_text(v)
        if text is None:
            return None
        return text.lstrip("@") or None


class TaskPayload(BaseModel):
    """Flattened task ready to be submitted to the project-management API."""
    name: str
    description: str
    priority: Priority = "normal"
    status: str = "open"
    tags: List[str] = Field(default_factory=list)
    assignees: List[str] = Field(default_factory=list)
    list_id: Optional[str] = None
    due_date: Optional[int] = None

    @property
    def priority_code(self) -> int:
        return PRIORITY_CODES.get(self.priority, 3)


class CreatedTask(BaseModel):
    """Reference to a task created in ClickUp."""
    id: str
    name: Optional[str] = None
    url: str
    raw: Dict[str, Any] = Field(default_factory=dict)


class TaskSearchResult(BaseModel):
    """Page of tasks returned by a ClickUp search."""
    tasks: List[Dict[str, Any]] = Field(default_factory=list)
    last_page: bool = False
    total_found: int = 0
    limit_applied: Optional[int] = None


# ============================================================================
# API request / response models
# ============================================================================

class CreateTicketRequest(BaseModel):
    """Incoming ticket creation request."""
    model_config = ConfigDict(populate_by_name=True)

    description: str
    priority: Optional[Priority] = None
    assignee: Optional[str] = None
    list_id: Optional[str] = Field(default=None, alias="listId")


class SearchTicketsRequest(BaseModel):
    """Incoming natural-language search request."""
    model_config = ConfigDict(populate_by_name=True)

    query: str
    team_id: Optional[str] = Field(default=None, alias="teamId")


class PromptRequest(BaseModel):
    """Incoming prompt for the unified endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    team_id: Optional[str] = Field(default=None, alias="teamId")


class ContextUpdateRequest(BaseModel):
    """Replacement company context document."""
    content: str


class RoutedResponse(BaseModel):
    """Outcome of the unified endpoint: exactly one of search or create."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    action: Action
    intent: Intent
    prompt: str
    search_params: Optional[SearchFilter] = Field(default=None, alias="searchParams")
    results: Optional[List[Dict[str, Any]]] = None
    total_found: Optional[int] = Field(default=None, alias="totalFound")
    last_page: Optional[bool] = Field(default=None, alias="lastPage")
    processed: Optional[TicketDraft] = None
    ticket: Optional[CreatedTask] = None
    source: Dict[str, str] = Field(default_factory=dict)
