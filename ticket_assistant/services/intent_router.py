"""
Intent router - one prompt, exactly one of search or create.
"""
from typing import Optional, Tuple

from ticket_assistant.core.logging import get_logger
from ticket_assistant.domain.exceptions import TeamIdMissing
from ticket_assistant.domain.interfaces import IProjectClient
from ticket_assistant.domain.models import CreatedTask, RoutedResponse, TaskSearchResult
from ticket_assistant.services.extraction_service import ExtractionResult, ExtractionService
from ticket_assistant.services.template_service import apply_template

logger = get_logger(__name__)


class IntentRouter:
    """Dispatches prompts to ticket creation or ticket search."""

    def __init__(
        self,
        extraction: ExtractionService,
        project_client: IProjectClient,
        default_team_id: Optional[str] = None
    ):
        self.extraction = extraction
        self.project_client = project_client
        self.default_team_id = default_team_id

    def resolve_team_id(self, team_id: Optional[str]) -> str:
        resolved = team_id or self.default_team_id
        if not resolved:
            raise TeamIdMissing()
        return resolved

    async def create_ticket(
        self,
        description: str,
        priority: Optional[str] = None,
        assignee: Optional[str] = None,
        list_id: Optional[str] = None
    ) -> Tuple[ExtractionResult, CreatedTask]:
        """Extract a draft, apply the template and create the task."""
        extraction = await self.extraction.extract_ticket(description)
        payload = apply_template(
            extraction.value, priority=priority, assignee=assignee, list_id=list_id
        )
        ticket = await self.project_client.create_task(payload)
        return extraction, ticket

    async def search_tickets(
        self, query: str, team_id: Optional[str] = None
    ) -> Tuple[ExtractionResult, TaskSearchResult]:
        """Extract a search filter and run it against the team's tasks."""
        resolved = self.resolve_team_id(team_id)
        extraction = await self.extraction.extract_search(query)
        result = await self.project_client.search_tasks(extraction.value, resolved)
        return extraction, result

    async def route(self, prompt: str, team_id: Optional[str] = None) -> RoutedResponse:
        intent_result = await self.extraction.detect_intent(prompt)
        intent = intent_result.value
        logger.info(
            f"Intent: {intent.action} (confidence {intent.confidence:.2f}, "
            f"source {intent_result.source})"
        )

        if intent.action == "search":
            extraction, result = await self.search_tickets(prompt, team_id)
            return RoutedResponse(
                action="search",
                intent=intent,
                prompt=prompt,
                search_params=extraction.value,
                results=result.tasks,
                total_found=result.total_found,
                last_page=result.last_page,
                source={"intent": intent_result.source, "search": extraction.source},
            )

        extraction, ticket = await self.create_ticket(
            prompt, priority=intent.priority, assignee=intent.assignee
        )
        return RoutedResponse(
            action="create",
            intent=intent,
            prompt=prompt,
            processed=extraction.value,
            ticket=ticket,
            source={"intent": intent_result.source, "ticket": extraction.source},
        )
