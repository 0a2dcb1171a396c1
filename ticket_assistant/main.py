"""
FastAPI application entry point.
"""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticket_assistant.api.dependencies import build_project_client
from ticket_assistant.api.routes import router
from ticket_assistant.core.config import get_settings
from ticket_assistant.core.logging import configure_logging, get_logger

settings = get_settings()
configure_logging(settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the runtime mode on startup, close the ClickUp connection pool on shutdown."""
    logger.info("Starting ClickUp Ticket Assistant")
    if not settings.llm_configured:
        logger.warning("OPENROUTER_API_KEY not set - extraction runs on heuristics only")
    else:
        logger.info(f"Model candidates: {', '.join(settings.model_candidates)}")
    if not settings.clickup_team_id:
        logger.warning("CLICKUP_TEAM_ID not set - searches must provide teamId")

    yield

    logger.info("Shutting down ClickUp Ticket Assistant")
    if settings.clickup_api_token:
        await build_project_client().close()


app = FastAPI(
    title="ClickUp Ticket Assistant",
    description="Turns free text into structured ClickUp tickets and task searches",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


def run():
    """Console entry point."""
    uvicorn.run("ticket_assistant.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
