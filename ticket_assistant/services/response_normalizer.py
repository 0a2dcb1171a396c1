"""
Response normalizer - turns raw model output into one structured contract.

Attempts run cheapest first and stop at the first success:

1. direct parse
2. markdown fence stripping
3. outermost ``{ ... }`` extraction
4. syntactic repair (quotes, bare keys, trailing commas, literals)
5. field-by-field extraction (intent contract only)

A parsed object only counts when it carries the contract's discriminator and
validates against the contract model. Nothing is fabricated here: when every
attempt fails a ParseFailure is raised and the caller decides what to do.
"""
import json
import re
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from ticket_assistant.core.logging import get_logger
from ticket_assistant.domain.exceptions import ParseFailure
from ticket_assistant.domain.models import TicketDraft, SearchFilter, Intent

logger = get_logger(__name__)

Structured = Union[TicketDraft, SearchFilter, Intent]


class Contract(str, Enum):
    """Structured output a model call is expected to produce."""
    TICKET = "ticket"
    SEARCH = "search"
    INTENT = "intent"


CONTRACT_MODELS: Dict[Contract, Type[BaseModel]] = {
    Contract.TICKET: TicketDraft,
    Contract.SEARCH: SearchFilter,
    Contract.INTENT: Intent,
}


def has_discriminator(contract: Contract, obj: Dict[str, Any]) -> bool:
    """Check that a parsed object answers the question that was asked."""
    if contract is Contract.INTENT:
        return bool(obj.get("action"))
    if contract is Contract.SEARCH:
        return "query" in obj
    return "title" in obj or "type" in obj


# ============================================================================
# Text cleanup helpers
# ============================================================================

_FENCE_WITH_LANGUAGE = re.compile(r"```[ \t]*[A-Za-z][\w+.-]*[ \t]*(?=\r?\n|$)")
_STRING_LITERAL = re.compile(r'"(?:[^"\\]|\\.)*"')
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$-]*)(\s*:)")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_UNQUOTED_VALUE = re.compile(
    r"(:\s*)(?!(?:true|false|null)\s*(?:[,}\]\n]|$))([A-Za-z_][^,{}\[\]\n\"]*?)(\s*)(?=[,}\]\n]|$)"
)
_JSON_LITERAL = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?|true|false|null")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (with or without a language tag)."""
    text = _FENCE_WITH_LANGUAGE.sub("", text)
    return text.replace("```", "").strip()


def extract_braced(text: str) -> Optional[str]:
    """Return the substring from the first '{' to the last '}', if any."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def _split_strings(text: str) -> List[Tuple[bool, str]]:
    """Split text into (is_string_literal, chunk) pieces."""
    pieces: List[Tuple[bool, str]] = []
    pos = 0
    for match in _STRING_LITERAL.finditer(text):
        if match.start() > pos:
            pieces.append((False, text[pos:match.start()]))
        pieces.append((True, match.group(0)))
        pos = match.end()
    if pos < len(text):
        pieces.append((False, text[pos:]))
    return pieces


def _outside_strings(text: str, fn: Callable[[str], str]) -> str:
    return "".join(chunk if is_string else fn(chunk) for is_string, chunk in _split_strings(text))


def _single_to_double_quotes(text: str) -> str:
    """Rewrite single-quoted strings as double-quoted ones.

    Existing double-quoted strings are copied through untouched, so an
    apostrophe inside "don't" is left alone.
    """
    out: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            match = _STRING_LITERAL.match(text, i)
            if match:
                out.append(match.group(0))
                i = match.end()
                continue
            out.append(ch)
            i += 1
        elif ch == "'":
            j = i + 1
            buf: List[str] = []
            while j < n and text[j] != "'":
                if text[j] == "\\" and j + 1 < n:
                    buf.append(text[j:j + 2])
                    j += 2
                    continue
                buf.append(text[j])
                j += 1
            if j >= n:
                # Unterminated: leave the remainder alone
                out.append(text[i:])
                break
            inner = "".join(buf).replace("\\'", "'")
            inner = re.sub(r'(?<!\\)"', r'\\"', inner)
            out.append(f'"{inner}"')
            i = j + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _unquote_literals(text: str) -> str:
    """Turn "0.8" / "true" / "null" values back into JSON literals."""
    pieces = _split_strings(text)
    out: List[str] = []
    for index, (is_string, chunk) in enumerate(pieces):
        if is_string and index > 0:
            prev_is_string, prev = pieces[index - 1]
            inner = chunk[1:-1]
            if not prev_is_string and prev.rstrip().endswith(":") and _JSON_LITERAL.fullmatch(inner):
                out.append(inner)
                continue
        out.append(chunk)
    return "".join(out)


def repair_json(text: str) -> str:
    """Best-effort syntactic repair of almost-JSON.

    Steps run in a fixed order and only touch text outside existing
    double-quoted strings:
    single quotes -> double quotes, bare keys quoted, trailing commas
    dropped, bare string values quoted, quoted literals un-quoted.
    """
    repaired = _single_to_double_quotes(text)
    repaired = _outside_strings(repaired, lambda s: _BARE_KEY.sub(r'\1"\2"\3', s))
    repaired = _outside_strings(repaired, lambda s: _TRAILING_COMMA.sub(r"\1", s))
    repaired = _outside_strings(repaired, lambda s: _UNQUOTED_VALUE.sub(r'\1"\2"\3', s))
    return _unquote_literals(repaired)


# ============================================================================
# Intent field extraction (last resort)
# ============================================================================

_KEY = r"""["']?{name}["']?\s*[:=]\s*"""
_INTENT_FIELDS = {
    "action": re.compile(_KEY.format(name="action") + r"""["']?([A-Za-z_]+)""", re.IGNORECASE),
    "confidence": re.compile(_KEY.format(name="confidence") + r"""["']?([0-9]*\.?[0-9]+)""", re.IGNORECASE),
    "reasoning": re.compile(
        _KEY.format(name="reasoning") + r"""(?:"([^"\n]*)"|'([^'\n]*)')""", re.IGNORECASE
    ),
    "priority": re.compile(_KEY.format(name="priority") + r"""["']?([A-Za-z0-9_]+)""", re.IGNORECASE),
    "assignee": re.compile(_KEY.format(name="assignee") + r"""["']?@?([^"',}\n]+)""", re.IGNORECASE),
}

EXTRACTED_REASONING = "extracted from malformed response"


def extract_intent_fields(text: str) -> Optional[Dict[str, Any]]:
    """Pull intent fields out of text that is not parseable as a whole."""
    action = _INTENT_FIELDS["action"].search(text)
    if not action:
        return None

    fields: Dict[str, Any] = {
        "action": action.group(1),
        "confidence": 0.7,
        "reasoning": EXTRACTED_REASONING,
        "priority": None,
        "assignee": None,
    }
    confidence = _INTENT_FIELDS["confidence"].search(text)
    if confidence:
        fields["confidence"] = float(confidence.group(1))
    reasoning = _INTENT_FIELDS["reasoning"].search(text)
    if reasoning:
        fields["reasoning"] = reasoning.group(1) if reasoning.group(1) is not None else reasoning.group(2)
    priority = _INTENT_FIELDS["priority"].search(text)
    if priority and priority.group(1).lower() != "null":
        fields["priority"] = priority.group(1)
    assignee = _INTENT_FIELDS["assignee"].search(text)
    if assignee and assignee.group(1).strip().lower() != "null":
        fields["assignee"] = assignee.group(1).strip()
    return fields


# ============================================================================
# Normalizer
# ============================================================================

class ResponseNormalizer:
    """Recovers a validated contract object from free-form model output."""

    def normalize(self, raw: str, contract: Contract) -> Structured:
        """Return the first successful interpretation of `raw`.

        Raises:
            ParseFailure: if no attempt yields a valid object for `contract`
        """
        if raw is None or not raw.strip():
            raise ParseFailure("Empty model output", details={"contract": contract.value})

        # 1. Direct parse
        result = self._try_parse(raw, contract, "direct")
        if result is not None:
            return result

        # 2. Markdown fences
        cleaned = strip_code_fences(raw)
        result = self._try_parse(cleaned, contract, "fences")
        if result is not None:
            return result

        # 3. Outermost braces
        braced = extract_braced(cleaned)
        if braced is not None:
            result = self._try_parse(braced, contract, "braces")
            if result is not None:
                return result

        # 4. Syntactic repair
        result = self._try_parse(repair_json(braced if braced is not None else cleaned), contract, "repair")
        if result is not None:
            return result

        # 5. Field extraction, intent only
        if contract is Contract.INTENT:
            fields = extract_intent_fields(raw)
            if fields is not None:
                validated = self._validate(fields, contract, "fields")
                if validated is not None:
                    return validated

        logger.warning(f"All parsing attempts failed for {contract.value} output")
        raise ParseFailure(
            f"Could not parse model output as {contract.value}",
            details={"contract": contract.value, "raw": raw[:500]}
        )

    def _try_parse(self, text: str, contract: Contract, stage: str) -> Optional[Structured]:
        try:
            parsed = json.loads(text)
        except (json.JSONDecodeError, ValueError) as e:
            logger.debug(f"[{stage}] JSON parse error: {e}")
            return None
        return self._validate(parsed, contract, stage)

    def _validate(self, parsed: Any, contract: Contract, stage: str) -> Optional[Structured]:
        if not isinstance(parsed, dict):
            logger.debug(f"[{stage}] parsed value is not an object")
            return None
        if not has_discriminator(contract, parsed):
            logger.debug(f"[{stage}] object lacks the {contract.value} discriminator")
            return None
        try:
            result = CONTRACT_MODELS[contract].model_validate(parsed)
        except ValidationError as e:
            logger.debug(f"[{stage}] schema validation failed: {e.error_count()} error(s)")
            return None
        except (ArithmeticError, TypeError, ValueError) as e:
            logger.debug(f"[{stage}] schema coercion failed: {e}")
            return None
        if stage != "direct":
            logger.info(f"Recovered {contract.value} output via '{stage}' stage")
        return result
