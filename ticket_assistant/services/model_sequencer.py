"""
Model fallback sequencer.

Drives one structured extraction through the ordered model candidates,
advancing to the next candidate on transport errors, malformed envelopes and
parse failures. The candidate tuple is read-only configuration; the position
in it is a local of each `run` call, so concurrent requests never see each
other's progress.
"""
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Sequence, Tuple

from ticket_assistant.core.logging import get_logger
from ticket_assistant.domain.exceptions import (
    ConfigurationMissing, ExhaustedCandidates, MalformedResponse, ParseFailure, TransportError
)
from ticket_assistant.domain.interfaces import ILLMClient
from ticket_assistant.services.response_normalizer import Contract, ResponseNormalizer, Structured

logger = get_logger(__name__)

RECOVERABLE_ERRORS = (TransportError, MalformedResponse, ParseFailure)


@dataclass(frozen=True)
class ExtractionRequest:
    """Prompt and sampling parameters for one model call."""
    system_prompt: str
    user_prompt: str
    temperature: float = 0.3
    max_tokens: int = 1000

    @property
    def messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_prompt},
        ]


@dataclass(frozen=True)
class CandidateFailure:
    """One candidate that did not produce a usable answer."""
    model: str
    error: Exception

    def describe(self) -> str:
        return f"{self.model}: {type(self.error).__name__}: {self.error}"


@dataclass
class SequencerResult:
    value: Structured
    model: str
    failures: List[CandidateFailure] = field(default_factory=list)


class ModelFallbackSequencer:
    """Tries each model candidate in order and returns the first success."""

    def __init__(
        self,
        llm_client: ILLMClient,
        candidates: Sequence[str],
        normalizer: Optional[ResponseNormalizer] = None
    ):
        self.llm_client = llm_client
        self.candidates: Tuple[str, ...] = tuple(candidates)
        if not self.candidates:
            raise ConfigurationMissing("No model candidates configured")
        self.normalizer = normalizer or ResponseNormalizer()

    async def run(self, request: ExtractionRequest, contract: Contract) -> SequencerResult:
        """Extract `contract` from the first candidate that answers usefully.

        Raises:
            ExhaustedCandidates: when every candidate failed
        """
        failures: List[CandidateFailure] = []

        for model in self.candidates:
            logger.info(f"Attempting {contract.value} extraction with model: {model}")
            try:
                content = await self.llm_client.complete(
                    model=model,
                    messages=request.messages,
                    temperature=request.temperature,
                    max_tokens=request.max_tokens,
                )
                value = self.normalizer.normalize(content, contract)
            except RECOVERABLE_ERRORS as e:
                failure = CandidateFailure(model=model, error=e)
                failures.append(failure)
                logger.warning(f"Model failed, trying next candidate - {failure.describe()}")
                continue

            logger.info(f"Successfully extracted {contract.value} with model: {model}")
            return SequencerResult(value=value, model=model, failures=failures)

        logger.error(f"All {len(failures)} model candidate(s) failed for {contract.value} extraction")
        raise ExhaustedCandidates(failures)
