"""
HTTP endpoints.

Routes only translate between HTTP and the services. Domain errors become
HTTPException with an `{"error", "details"}` body.
"""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ticket_assistant.api.dependencies import (
    get_context_repository, get_intent_router, get_llm_client
)
from ticket_assistant.core.logging import get_logger
from ticket_assistant.domain.exceptions import (
    EmptyInput, TeamIdMissing, TransportError
)
from ticket_assistant.domain.interfaces import IContextRepository
from ticket_assistant.domain.models import (
    ContextUpdateRequest, CreateTicketRequest, PromptRequest, SearchTicketsRequest
)
from ticket_assistant.services.intent_router import IntentRouter

logger = get_logger(__name__)

router = APIRouter()


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"error": message})


def _server_error(error: str, e: Exception) -> HTTPException:
    return HTTPException(status_code=500, detail={"error": error, "details": str(e)})


@router.get("/api/health")
async def health() -> Dict[str, Any]:
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post("/api/create-ticket")
async def create_ticket(
    request: CreateTicketRequest,
    intent_router: IntentRouter = Depends(get_intent_router)
) -> Dict[str, Any]:
    """Turn a free-text description into a ClickUp task."""
    logger.info("HTTP POST /api/create-ticket")
    try:
        extraction, ticket = await intent_router.create_ticket(
            request.description,
            priority=request.priority,
            assignee=request.assignee,
            list_id=request.list_id,
        )
    except EmptyInput as e:
        raise _bad_request(e.message)
    except Exception as e:
        logger.error(f"Create ticket error: {e}", exc_info=True)
        raise _server_error("Failed to create ticket", e)

    return {
        "success": True,
        "ticket": ticket.model_dump(),
        "processed": extraction.value.model_dump(by_alias=True),
        "source": extraction.source,
    }


@router.post("/api/search-tickets")
async def search_tickets(
    request: SearchTicketsRequest,
    intent_router: IntentRouter = Depends(get_intent_router)
) -> Dict[str, Any]:
    """Natural-language task search."""
    logger.info(f"HTTP POST /api/search-tickets - query: {request.query!r}")
    try:
        extraction, result = await intent_router.search_tickets(request.query, request.team_id)
    except (EmptyInput, TeamIdMissing) as e:
        raise _bad_request(e.message)
    except Exception as e:
        logger.error(f"Search tickets error: {e}", exc_info=True)
        raise _server_error("Failed to search tickets", e)

    return {
        "success": True,
        "query": request.query,
        "searchParams": extraction.value.model_dump(by_alias=True),
        "results": result.tasks,
        "totalFound": result.total_found,
        "lastPage": result.last_page,
        "source": extraction.source,
    }


@router.post("/mcp")
async def route_prompt(
    request: PromptRequest,
    intent_router: IntentRouter = Depends(get_intent_router)
) -> Dict[str, Any]:
    """Unified endpoint: classify the prompt, then search or create."""
    logger.info(f"HTTP POST /mcp - prompt: {request.prompt!r}")
    try:
        routed = await intent_router.route(request.prompt, request.team_id)
    except (EmptyInput, TeamIdMissing) as e:
        raise _bad_request(e.message)
    except Exception as e:
        logger.error(f"MCP error: {e}", exc_info=True)
        raise _server_error("Failed to process prompt", e)

    return routed.model_dump(by_alias=True, exclude_none=True)


@router.get("/api/context")
async def get_context(
    repository: IContextRepository = Depends(get_context_repository)
) -> Dict[str, Any]:
    return {"content": repository.get_context()}


@router.put("/api/context")
async def update_context(
    request: ContextUpdateRequest,
    repository: IContextRepository = Depends(get_context_repository)
) -> Dict[str, Any]:
    try:
        repository.save_context(request.content)
    except OSError as e:
        logger.error(f"Save context error: {e}", exc_info=True)
        raise _server_error("Failed to save context", e)
    return {"success": True, "message": "Context saved successfully"}


@router.get("/api/context/stats")
async def context_stats(
    repository: IContextRepository = Depends(get_context_repository)
) -> Dict[str, Any]:
    return repository.get_stats()


@router.get("/api/llm/status")
async def llm_status(llm_client=Depends(get_llm_client)) -> Dict[str, Any]:
    """Connectivity probe: list the first few models."""
    if llm_client is None:
        return {"success": False, "error": "No OpenRouter API key configured"}
    try:
        models = await llm_client.list_models(limit=5)
    except TransportError as e:
        logger.error(f"LLM status error: {e}")
        return {"success": False, "error": e.message}
    return {"success": True, "models": models}
