"""
FastAPI dependency injection.

Factories are cached, so every request shares the same clients and their
connection pools. Tests override them through `app.dependency_overrides`.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException

from ticket_assistant.core.config import get_settings
from ticket_assistant.core.logging import get_logger
from ticket_assistant.domain.exceptions import ConfigurationMissing
from ticket_assistant.domain.interfaces import IContextRepository, ILLMClient, IProjectClient
from ticket_assistant.infrastructure.clickup_client import ClickUpClient
from ticket_assistant.infrastructure.context_repository import FileContextRepository
from ticket_assistant.infrastructure.llm_client import OpenRouterClient
from ticket_assistant.services.extraction_service import ExtractionService
from ticket_assistant.services.heuristic_classifier import HeuristicClassifier
from ticket_assistant.services.intent_router import IntentRouter
from ticket_assistant.services.model_sequencer import ModelFallbackSequencer

logger = get_logger(__name__)


@lru_cache()
def get_llm_client() -> Optional[ILLMClient]:
    """OpenRouter client, or None when no API key is configured (heuristic mode)."""
    settings = get_settings()
    try:
        return OpenRouterClient(
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            timeout=settings.llm_timeout_seconds,
            referer=settings.app_referer,
            title=settings.app_title,
        )
    except ConfigurationMissing as e:
        logger.warning(f"{e.message} - running in heuristic mode")
        return None


@lru_cache()
def get_context_repository() -> IContextRepository:
    return FileContextRepository(get_settings().context_file)


@lru_cache()
def get_extraction_service() -> ExtractionService:
    llm_client = get_llm_client()
    sequencer = None
    if llm_client is not None:
        sequencer = ModelFallbackSequencer(llm_client, get_settings().model_candidates)
    return ExtractionService(
        sequencer=sequencer,
        classifier=HeuristicClassifier(),
        context_repository=get_context_repository(),
    )


@lru_cache()
def build_project_client() -> ClickUpClient:
    settings = get_settings()
    return ClickUpClient(
        api_token=settings.clickup_api_token,
        base_url=settings.clickup_base_url,
        default_list_id=settings.clickup_list_id,
        default_team_id=settings.clickup_team_id,
    )


def get_project_client() -> IProjectClient:
    try:
        return build_project_client()
    except ConfigurationMissing as e:
        logger.error(f"ClickUp client unavailable: {e.message}")
        raise HTTPException(
            status_code=500, detail={"error": "ClickUp is not configured", "details": e.message}
        )


def get_intent_router(
    extraction: ExtractionService = Depends(get_extraction_service),
    project_client: IProjectClient = Depends(get_project_client)
) -> IntentRouter:
    return IntentRouter(
        extraction=extraction,
        project_client=project_client,
        default_team_id=get_settings().clickup_team_id,
    )
