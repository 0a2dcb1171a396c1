"""
Extraction service - the three structured extraction operations.

Each operation builds its prompt, runs it through the model fallback
sequencer, and substitutes the heuristic classifier when no model is
configured or every candidate failed. Callers always get a valid object;
`source` says which path produced it.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from ticket_assistant.core.logging import get_logger
from ticket_assistant.domain.exceptions import EmptyInput, ExhaustedCandidates
from ticket_assistant.domain.interfaces import IContextRepository
from ticket_assistant.services import prompts
from ticket_assistant.services.heuristic_classifier import HeuristicClassifier
from ticket_assistant.services.model_sequencer import ExtractionRequest, ModelFallbackSequencer
from ticket_assistant.services.response_normalizer import Contract, Structured

logger = get_logger(__name__)

SOURCE_MODEL = "model"
SOURCE_HEURISTIC = "heuristic"


@dataclass
class ExtractionResult:
    value: Structured
    source: str
    model: Optional[str] = None
    errors: List[str] = field(default_factory=list)


def _require_text(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise EmptyInput(name)
    return value.strip()


class ExtractionService:
    """Ticket, search and intent extraction with a heuristic safety net."""

    def __init__(
        self,
        sequencer: Optional[ModelFallbackSequencer],
        classifier: Optional[HeuristicClassifier] = None,
        context_repository: Optional[IContextRepository] = None
    ):
        self.sequencer = sequencer
        self.classifier = classifier or HeuristicClassifier()
        self.context_repository = context_repository

    async def extract_ticket(self, description: str) -> ExtractionResult:
        description = _require_text(description, "description")
        return await self._extract(
            lambda: prompts.build_ticket_request(description, self._context_prompt()),
            Contract.TICKET,
            lambda: self.classifier.classify_ticket(description),
        )

    async def extract_search(self, query: str, now: Optional[datetime] = None) -> ExtractionResult:
        query = _require_text(query, "query")
        now = now or datetime.now().astimezone()
        return await self._extract(
            lambda: prompts.build_search_request(query, now),
            Contract.SEARCH,
            lambda: self.classifier.classify_search(query, now),
        )

    async def detect_intent(self, prompt: str) -> ExtractionResult:
        prompt = _require_text(prompt, "prompt")
        return await self._extract(
            lambda: prompts.build_intent_request(prompt),
            Contract.INTENT,
            lambda: self.classifier.classify_intent(prompt),
        )

    def _context_prompt(self) -> str:
        if self.context_repository is None:
            return ""
        return self.context_repository.build_context_prompt()

    async def _extract(
        self,
        build_request: Callable[[], ExtractionRequest],
        contract: Contract,
        fallback: Callable[[], Structured]
    ) -> ExtractionResult:
        if self.sequencer is None:
            logger.warning(f"LLM not configured, using heuristic {contract.value} extraction")
            return ExtractionResult(
                value=fallback(), source=SOURCE_HEURISTIC, errors=["LLM not configured"]
            )

        try:
            result = await self.sequencer.run(build_request(), contract)
        except ExhaustedCandidates as e:
            logger.warning(f"Falling back to heuristic {contract.value} extraction: {e}")
            return ExtractionResult(
                value=fallback(),
                source=SOURCE_HEURISTIC,
                errors=[f.describe() for f in e.failures],
            )

        return ExtractionResult(
            value=result.value,
            source=SOURCE_MODEL,
            model=result.model,
            errors=[f.describe() for f in result.failures],
        )
