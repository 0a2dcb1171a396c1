"""
Domain interfaces - Abstractions for external collaborators.
Following SOLID: Dependency Inversion Principle - services depend on these
abstractions, not on the OpenRouter / ClickUp / file implementations.
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any

from ticket_assistant.domain.models import (
    SearchFilter, TaskPayload, CreatedTask, TaskSearchResult
)


class ILLMClient(ABC):
    """Interface for a chat-completion model backend."""

    @abstractmethod
    async def complete(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 1000
    ) -> str:
        """Return the text of the first choice.

        Raises TransportError on network/timeout problems and MalformedResponse
        when the reply envelope has no usable content.
        """
        pass

    @abstractmethod
    async def list_models(self, limit: int = 5) -> List[Dict[str, Any]]:
        """List available models (connectivity probe)."""
        pass


class IProjectClient(ABC):
    """Interface for the project-management system of record."""

    @abstractmethod
    async def create_task(self, payload: TaskPayload) -> CreatedTask:
        """Create a task and return its id and canonical URL."""
        pass

    @abstractmethod
    async def search_tasks(self, search_filter: SearchFilter, team_id: str) -> TaskSearchResult:
        """Search tasks of a team. `limit` truncates the returned page."""
        pass


class IContextRepository(ABC):
    """Interface for the company context document."""

    @abstractmethod
    def get_context(self) -> str:
        """Return the raw markdown document, or an empty string if absent."""
        pass

    @abstractmethod
    def save_context(self, content: str) -> None:
        """Replace the document."""
        pass

    @abstractmethod
    def build_context_prompt(self) -> str:
        """Render the document as a prompt fragment ('' when empty)."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Section and size statistics for the document."""
        pass

    @abstractmethod
    def last_modified(self) -> Optional[str]:
        """ISO timestamp of the last change, or None."""
        pass
