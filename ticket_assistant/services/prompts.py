"""
Prompt templates for ticket extraction, search extraction and intent detection.
Version-controlled for tracking changes.
"""
from datetime import datetime
from typing import Optional

from ticket_assistant.services.model_sequencer import ExtractionRequest

# Prompt version for tracking changes
PROMPT_VERSION = "1.0.0"

RAW_JSON_ONLY = (
    "CRITICAL: Respond with ONLY raw JSON - no markdown code blocks, no backticks, "
    "no explanations, just the JSON object."
)


# =============================================================================
# TICKET EXTRACTION PROMPT
# =============================================================================
TICKET_PROMPT = {
    "system": (
        "You are a helpful assistant that extracts structured information from issue "
        "descriptions to create well-formatted tickets. " + RAW_JSON_ONLY
    ),
    "user": """You are an expert engineering project manager. Analyze the following user description and create a well-structured engineering ticket.

{context}

INSTRUCTIONS:
1. Determine the ticket type (bug, feature, task, improvement, spike)
2. Extract key information and structure it professionally
3. Create proper acceptance criteria for engineering work
4. Identify technical considerations and scope
5. Suggest appropriate tags and priority

Return ONLY a JSON object with this exact structure:

{{
    "title": "Clear, actionable title (max 80 chars)",
    "type": "bug|feature|task|improvement|spike",
    "priority": "urgent|high|normal|low",
    "summary": "Brief 1-2 sentence summary",
    "description": "Detailed technical description",
    "stepsToReproduce": ["step1", "step2"] or null,
    "expectedBehavior": "What should happen" or null,
    "actualBehavior": "What currently happens" or null,
    "acceptanceCriteria": ["criteria1", "criteria2"],
    "technicalNotes": "Technical considerations, dependencies, etc." or null,
    "testingNotes": "How to test this work" or null,
    "tags": ["tag1", "tag2"],
    "estimatedComplexity": "low|medium|high",
    "estimatedHours": number or null,
    "dependencies": ["dependency1"] or null,
    "affectedComponents": ["component1"] or null
}}

TICKET TYPE GUIDELINES:
- bug: Something is broken or not working as expected
- feature: New functionality
- task: General work item, maintenance, or non-feature work
- improvement: Optimization, refactoring, or enhancement of existing functionality
- spike: Research, investigation, or proof of concept work

PRIORITY GUIDELINES:
- urgent: Critical production issue, security vulnerability
- high: Important feature, significant bug affecting users
- normal: Standard feature work, minor bugs
- low: Nice-to-have, minor improvements

USER DESCRIPTION:
{description}""",
    "temperature": 0.3,
    "max_tokens": 1000,
}


# =============================================================================
# SEARCH EXTRACTION PROMPT
# =============================================================================
SEARCH_PROMPT = {
    "system": (
        "You are a helpful assistant that converts natural language search queries into "
        "structured search parameters for ClickUp tasks. " + RAW_JSON_ONLY
    ),
    "user": """Analyze the following search query and extract relevant search parameters.

CURRENT TIME: {now_iso} ({now_ms} ms since epoch)

SEARCH QUERY: "{query}"

Convert this into a JSON object with the following structure:

{{
    "query": "main search terms (keywords from the query)",
    "assignees": ["username1"] or [],
    "statuses": ["status1"] or [],
    "tags": ["tag1"] or [],
    "dateCreatedGt": timestamp or null,
    "dateCreatedLt": timestamp or null,
    "dateUpdatedGt": timestamp or null,
    "dateUpdatedLt": timestamp or null,
    "dueDateGt": timestamp or null,
    "dueDateLt": timestamp or null,
    "priority": "urgent|high|normal|low" or null,
    "orderBy": "created|updated|due_date|priority",
    "reverse": true|false,
    "limit": number or null
}}

EXTRACTION RULES:
1. Query: main keywords only, without filter words like "assigned to", "created", "status"
2. Assignees: "assigned to X", "by X", "for X"
3. Statuses: "open", "in progress", "done", "closed", "todo", "complete"
4. Tags: "tagged with", "tag:", "label:" followed by tag names
5. Dates: Unix timestamps in milliseconds, relative to CURRENT TIME
   - "today" = start of the current day
   - "yesterday" = yesterday 00:00 to 23:59
   - "last week" = 7 days ago to now
   - "last month" = 30 days ago to now
6. Priority: "urgent", "high priority", "low priority"
7. Ordering:
   - "newest", "latest", "recent" -> orderBy "created", reverse true
   - "oldest" -> orderBy "created", reverse false
   - "by priority" -> orderBy "priority", reverse true
   - default -> orderBy "updated", reverse true
8. Limit: numbers in phrases like "10 newest tickets", "top 20 tasks", "last 3 tickets"; otherwise null

EXAMPLES:
- "bugs assigned to john" -> {{"query": "bugs", "assignees": ["john"], "limit": null}}
- "10 newest tickets" -> {{"query": "tickets", "orderBy": "created", "reverse": true, "limit": 10}}
- "top 20 bugs by priority" -> {{"query": "bugs", "orderBy": "priority", "reverse": true, "limit": 20}}""",
    "temperature": 0.1,
    "max_tokens": 500,
}


# =============================================================================
# INTENT DETECTION PROMPT
# =============================================================================
INTENT_PROMPT = {
    "system": (
        "You are a helpful assistant that determines user intent for ticket management. "
        + RAW_JSON_ONLY
    ),
    "user": """Analyze the following user prompt and determine if they want to SEARCH for existing tickets or CREATE a new ticket.

USER PROMPT: "{prompt}"

SEARCH intent - the user wants to find existing tickets:
- Keywords: "find", "search", "show me", "list", "get", "what", "which", "who has", "assigned to"
- Examples: "find bugs assigned to john", "what tickets were created last week"

CREATE intent - the user wants to create a new ticket:
- Keywords: "create", "add", "new", "make", "build", "implement", "fix", "bug:", "issue:", "feature:"
- Describes a problem, feature request, or task
- Examples: "the save button is broken", "add dark mode to the app"

Priority (if mentioned): "urgent", "critical", "asap" -> urgent; "high", "important" -> high; "low", "minor" -> low.
Assignee (if mentioned): "assign to X", "for X", "@X".

If unclear, default to "create" with confidence < 0.7.

{{
    "action": "search|create",
    "confidence": 0.0-1.0,
    "reasoning": "brief explanation",
    "priority": "urgent|high|normal|low" or null,
    "assignee": "username" or null
}}""",
    "temperature": 0.1,
    "max_tokens": 200,
}


def _request(template: dict, **values) -> ExtractionRequest:
    return ExtractionRequest(
        system_prompt=template["system"],
        user_prompt=template["user"].format(**values),
        temperature=template["temperature"],
        max_tokens=template["max_tokens"],
    )


def build_ticket_request(description: str, context_prompt: str = "") -> ExtractionRequest:
    return _request(TICKET_PROMPT, description=description, context=context_prompt)


def build_search_request(query: str, now: Optional[datetime] = None) -> ExtractionRequest:
    """Search prompt stamped with the current time for relative dates."""
    now = now or datetime.now().astimezone()
    return _request(
        SEARCH_PROMPT,
        query=query,
        now_iso=now.isoformat(timespec="seconds"),
        now_ms=int(now.timestamp() * 1000),
    )


def build_intent_request(prompt: str) -> ExtractionRequest:
    return _request(INTENT_PROMPT, prompt=prompt)
