"""
Heuristic classifier - the degraded path used when no model is configured or
every model candidate failed.

Produces the same contracts as the model path (TicketDraft, SearchFilter,
Intent) from keyword and pattern rules only. It never raises: any input text
yields a structurally valid object.
"""
import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ticket_assistant.core.logging import get_logger
from ticket_assistant.domain.models import TicketDraft, SearchFilter, Intent

logger = get_logger(__name__)

TITLE_MAX_LENGTH = 80
FALLBACK_TAG = "heuristic-fallback"
DEFAULT_TITLE = "New Ticket"
DEFAULT_QUERY = "tasks"
DEFAULT_ACCEPTANCE_CRITERIA = (
    "Work is completed as described",
    "Code is tested and reviewed",
)

# Ordered by precedence: the first group with a hit wins.
TYPE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("bug", (
        "bug", "bugs", "error", "errors", "broken", "crash", "crashes", "crashing",
        "fail", "fails", "failing", "failed", "failure", "exception", "defect",
        "not working", "doesn't work", "does not work",
    )),
    ("feature", (
        "add", "new", "implement", "feature", "introduce", "support for", "ability to", "allow",
    )),
    ("improvement", (
        "optimize", "optimise", "refactor", "improve", "improvement", "enhance",
        "performance", "speed up", "clean up", "cleanup", "simplify",
    )),
    ("spike", (
        "investigate", "investigation", "spike", "research", "explore", "evaluate",
        "proof of concept", "poc",
    )),
)

PRIORITY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("urgent", ("urgent", "critical", "asap", "emergency", "blocker", "immediately", "outage")),
    ("high", ("high", "important", "severe", "major")),
    ("low", ("low", "minor", "trivial", "cosmetic", "nice to have")),
)

SEARCH_KEYWORDS: Tuple[str, ...] = (
    "find", "search", "show", "list", "get", "what", "which", "who", "where",
    "display", "view", "look up", "lookup", "are there", "how many", "existing",
    "assigned to", "filter",
)

CREATE_KEYWORDS: Tuple[str, ...] = (
    "create", "add", "new", "make", "build", "implement", "fix", "broken", "bug",
    "issue", "feature", "need", "should", "error", "crash", "not working",
    "doesn't work", "request",
)

_TICKET_NOUNS = r"(?:tickets?|tasks?|issues?|bugs?|items?)"
SEARCH_PATTERNS: Tuple[re.Pattern, ...] = tuple(
    re.compile(p, re.IGNORECASE) for p in (
        rf"\bare there\b.*\b{_TICKET_NOUNS}\b",
        rf"\bwhat\b.*\b{_TICKET_NOUNS}\b",
        rf"\bshow\b.*\b{_TICKET_NOUNS}\b",
        rf"\b(?:list|find|search)\b.*\b{_TICKET_NOUNS}\b",
        rf"\bhow many\b.*\b{_TICKET_NOUNS}\b",
    )
)

# Search-filter vocabulary
ASSIGNEE_MARKERS = frozenset({"assigned", "assignee", "by", "for"})
STATUS_GROUPS: Tuple[Tuple[str, frozenset], ...] = (
    ("open", frozenset({"open", "todo", "new"})),
    ("in progress", frozenset({"progress", "working", "active"})),
    ("done", frozenset({"done", "complete", "completed", "finished", "closed"})),
)
SEARCH_PRIORITY_WORDS: Tuple[Tuple[str, frozenset], ...] = (
    ("urgent", frozenset({"urgent", "critical", "asap"})),
    ("high", frozenset({"high", "important"})),
    ("low", frozenset({"low", "minor"})),
)
DATE_WORDS = ("today", "yesterday", "week", "month")
DATE_QUALIFIERS = frozenset({"last", "this", "past", "previous"})
NEWEST_WORDS = frozenset({"newest", "latest", "recent", "most"})
LIMIT_MARKERS = frozenset({"top", "first", "last", "newest", "latest", "oldest", "recent"})
FILLER_WORDS = frozenset({
    "show", "me", "find", "search", "list", "get", "all", "any", "the", "a", "an", "of",
    "with", "that", "are", "is", "there", "what", "which", "please", "created", "updated",
    "in", "to", "on", "since", "from", "my", "by", "for", "assigned", "assignee",
    "priority", "status", "ago", "and", "or", "look", "looking", "display", "view",
    "oldest", "top", "first",
})

_STATUS_WORDS = frozenset().union(*(words for _, words in STATUS_GROUPS))
_PRIORITY_WORDS = frozenset().union(*(words for _, words in SEARCH_PRIORITY_WORDS))
NOT_A_NAME = (
    FILLER_WORDS | _STATUS_WORDS | _PRIORITY_WORDS | DATE_QUALIFIERS | NEWEST_WORDS
    | frozenset(DATE_WORDS) | frozenset({
        "it", "this", "us", "them", "everyone", "ticket", "tickets", "task", "tasks",
        "bug", "bugs", "issue", "issues", "feature", "features", "someone", "nobody",
    })
)

ASSIGNEE_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"@([\w.-]+)"),
    re.compile(r"\bassign(?:ed)?\s+to\s+@?([\w.-]+)", re.IGNORECASE),
    re.compile(r"\bfor\s+@?([\w.-]+)", re.IGNORECASE),
)


def _keyword_pattern(keywords: Sequence[str]) -> re.Pattern:
    alternatives = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


_TYPE_PATTERNS = [(name, _keyword_pattern(words)) for name, words in TYPE_KEYWORDS]
_PRIORITY_PATTERNS = [(name, _keyword_pattern(words)) for name, words in PRIORITY_KEYWORDS]


def _distinct_hits(text: str, keywords: Sequence[str]) -> int:
    return sum(1 for k in keywords if re.search(rf"\b{re.escape(k)}\b", text, re.IGNORECASE))


def _first_match(text: str, patterns: List[Tuple[str, re.Pattern]]) -> Optional[str]:
    for name, pattern in patterns:
        if pattern.search(text):
            return name
    return None


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _is_count(token: str) -> bool:
    # str.isdigit also accepts superscripts and non-ASCII digits int() rejects
    return token.isascii() and token.isdigit()


class HeuristicClassifier:
    """Deterministic keyword classifier mirroring the three model contracts."""

    # ------------------------------------------------------------------
    # Tickets
    # ------------------------------------------------------------------

    def classify_ticket(self, description: str) -> TicketDraft:
        text = description or ""
        ticket_type = _first_match(text, _TYPE_PATTERNS) or "task"
        priority = _first_match(text, _PRIORITY_PATTERNS) or "normal"
        title = self._title(text)

        logger.info(f"Heuristic ticket classification: type={ticket_type}, priority={priority}")
        return TicketDraft(
            title=title,
            type=ticket_type,
            priority=priority,
            summary=self._first_sentence(text) or title,
            description=text,
            acceptance_criteria=list(DEFAULT_ACCEPTANCE_CRITERIA),
            tags=[ticket_type, FALLBACK_TAG],
        )

    @staticmethod
    def _title(text: str) -> str:
        for line in text.splitlines():
            if line.strip():
                return line.strip()[:TITLE_MAX_LENGTH]
        return DEFAULT_TITLE

    @staticmethod
    def _first_sentence(text: str) -> str:
        flat = " ".join(text.split())
        match = re.match(r"(.+?[.!?])(?:\s|$)", flat)
        sentence = match.group(1) if match else flat
        return sentence[:200]

    # ------------------------------------------------------------------
    # Search filters
    # ------------------------------------------------------------------

    def classify_search(self, query: str, now: Optional[datetime] = None) -> SearchFilter:
        now = now or datetime.now().astimezone()
        tokens = re.sub(r"[^\w\s@]", " ", (query or "").lower()).split()
        consumed: Set[int] = set()
        params: Dict[str, object] = {}

        assignees = self._search_assignees(tokens, consumed)
        statuses = self._search_statuses(tokens, consumed)
        priority = self._search_priority(tokens, consumed)
        params.update(self._search_dates(tokens, consumed, now))
        order_by, reverse = self._search_ordering(tokens, consumed)
        limit = self._search_limit(tokens, consumed)

        residual = [
            tok for i, tok in enumerate(tokens)
            if i not in consumed and tok not in FILLER_WORDS and tok not in DATE_QUALIFIERS
        ]
        search_filter = SearchFilter(
            query=" ".join(residual) or DEFAULT_QUERY,
            assignees=assignees,
            statuses=statuses,
            priority=priority,
            order_by=order_by,
            reverse=reverse,
            limit=limit,
            **params,
        )
        logger.info(f"Heuristic search filter: {search_filter.model_dump(exclude_none=True)}")
        return search_filter

    @staticmethod
    def _search_assignees(tokens: List[str], consumed: Set[int]) -> List[str]:
        names: List[str] = []
        for i, tok in enumerate(tokens):
            if tok.startswith("@") and len(tok) > 1:
                names.append(tok[1:])
                consumed.add(i)
                continue
            if tok not in ASSIGNEE_MARKERS:
                continue
            # "search for login bugs" is a topic, not an assignee
            if tok == "for" and i > 0 and tokens[i - 1] in {"search", "look", "looking"}:
                continue
            j = i + 1
            if j < len(tokens) and tokens[j] == "to":
                j += 1
            if j < len(tokens) and tokens[j] not in NOT_A_NAME and not _is_count(tokens[j]):
                names.append(tokens[j].lstrip("@"))
                consumed.update(range(i, j + 1))
        return names

    @staticmethod
    def _search_statuses(tokens: List[str], consumed: Set[int]) -> List[str]:
        statuses: List[str] = []
        for i, tok in enumerate(tokens):
            if i in consumed:
                continue
            for status, words in STATUS_GROUPS:
                if tok in words:
                    statuses.append(status)
                    consumed.add(i)
                    if status == "in progress" and i > 0 and tokens[i - 1] == "in":
                        consumed.add(i - 1)
        return statuses

    @staticmethod
    def _search_priority(tokens: List[str], consumed: Set[int]) -> Optional[str]:
        found: Dict[str, int] = {}
        for i, tok in enumerate(tokens):
            if i in consumed:
                continue
            for level, words in SEARCH_PRIORITY_WORDS:
                if tok in words:
                    found.setdefault(level, i)
                    consumed.add(i)
                    if i + 1 < len(tokens) and tokens[i + 1] == "priority":
                        consumed.add(i + 1)
        for level, _ in SEARCH_PRIORITY_WORDS:
            if level in found:
                return level
        return None

    @staticmethod
    def _search_dates(tokens: List[str], consumed: Set[int], now: datetime) -> Dict[str, int]:
        """Fixed-length windows; 'month' is 30 days, not a calendar month."""
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        for i, word in enumerate(tokens):
            if i in consumed or word not in DATE_WORDS:
                continue
            consumed.add(i)
            if i > 0 and tokens[i - 1] in DATE_QUALIFIERS:
                consumed.add(i - 1)

            if word == "today":
                return {"date_created_gt": _epoch_ms(start_of_day)}
            if word == "yesterday":
                return {
                    "date_created_gt": _epoch_ms(start_of_day - timedelta(days=1)),
                    "date_created_lt": _epoch_ms(start_of_day) - 1,
                }
            if word == "week":
                return {"date_created_gt": _epoch_ms(now - timedelta(days=7))}
            return {"date_created_gt": _epoch_ms(now - timedelta(days=30))}
        return {}

    @staticmethod
    def _search_ordering(tokens: List[str], consumed: Set[int]) -> Tuple[str, bool]:
        for i, tok in enumerate(tokens):
            if i in consumed:
                continue
            if tok in {"newest", "latest", "recent"}:
                consumed.add(i)
                return "created", True
            if tok == "oldest":
                consumed.add(i)
                return "created", False
            if tok == "priority" and i > 0 and tokens[i - 1] == "by":
                consumed.update({i - 1, i})
                return "priority", True
        return "updated", True

    @staticmethod
    def _search_limit(tokens: List[str], consumed: Set[int]) -> Optional[int]:
        for i, tok in enumerate(tokens):
            if i in consumed or not _is_count(tok):
                continue
            before = tokens[i - 1] if i > 0 else ""
            after = tokens[i + 1] if i + 1 < len(tokens) else ""
            if before in LIMIT_MARKERS or after in LIMIT_MARKERS:
                value = int(tok)
                if value > 0:
                    consumed.add(i)
                    return value
        return None

    # ------------------------------------------------------------------
    # Intent
    # ------------------------------------------------------------------

    def classify_intent(self, prompt: str) -> Intent:
        text = prompt or ""
        priority = self.extract_priority(text)
        assignee = self.extract_assignee(text)

        for pattern in SEARCH_PATTERNS:
            if pattern.search(text):
                return Intent(
                    action="search",
                    confidence=0.9,
                    reasoning="Heuristic: prompt matches a ticket lookup pattern",
                    priority=priority,
                    assignee=assignee,
                )

        search_hits = _distinct_hits(text, SEARCH_KEYWORDS)
        create_hits = _distinct_hits(text, CREATE_KEYWORDS)
        if search_hits > create_hits:
            action, hits = "search", search_hits
        elif create_hits > search_hits:
            action, hits = "create", create_hits
        else:
            action, hits = "create", 0

        confidence = round(min(0.5 + 0.1 * hits, 0.9), 2)
        logger.info(
            f"Heuristic intent: {action} (search={search_hits}, create={create_hits}, "
            f"confidence={confidence})"
        )
        return Intent(
            action=action,
            confidence=confidence,
            reasoning=f"Heuristic: {search_hits} search signal(s), {create_hits} create signal(s)",
            priority=priority,
            assignee=assignee,
        )

    @staticmethod
    def extract_priority(text: str) -> Optional[str]:
        tokens = set(re.sub(r"[^\w\s]", " ", (text or "").lower()).split())
        for level, words in SEARCH_PRIORITY_WORDS:
            if tokens & words:
                return level
        return None

    @staticmethod
    def extract_assignee(text: str) -> Optional[str]:
        for pattern in ASSIGNEE_PATTERNS:
            for match in pattern.finditer(text or ""):
                name = match.group(1).strip(".-")
                if name and name.lower() not in NOT_A_NAME:
                    return name
        return None
