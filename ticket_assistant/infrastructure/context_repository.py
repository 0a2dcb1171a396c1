"""
Infrastructure layer - file-backed company context document.

The document is markdown keyed by `## ` section headers. It is re-read on
every call so edits are picked up without a restart. A missing file is an
empty context.
"""
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ticket_assistant.core.logging import get_logger
from ticket_assistant.domain.interfaces import IContextRepository

logger = get_logger(__name__)

SECTION_LINE_LIMIT = 10
_BOLD_LABEL = re.compile(r"^\*\*([^*]+)\*\*:?")

# (section header, prompt label), in prompt order
PROMPT_SECTIONS = (
    ("Company Information", "COMPANY CONTEXT"),
    ("Tech Stack", "TECH STACK"),
    ("Current Projects", "CURRENT PROJECTS"),
    ("Development Standards", "DEVELOPMENT STANDARDS"),
    ("Common Issues", "COMMON ISSUES"),
)

CONTEXT_INSTRUCTIONS = (
    "Use this context to make the ticket more relevant to our specific environment, "
    "tech stack, and development practices. Reference appropriate technologies, follow "
    "our standards, and consider our common patterns when creating the ticket."
)


def parse_sections(content: str) -> Dict[str, str]:
    """Split markdown into {header: body} on `## ` lines. Text before the first header is dropped."""
    sections: Dict[str, str] = {}
    current: Optional[str] = None
    lines = []

    for line in content.split("\n"):
        if line.startswith("## "):
            if current is not None:
                sections[current] = "\n".join(lines).strip()
            current = line[3:].strip()
            lines = []
        elif current is not None:
            lines.append(line)

    if current is not None:
        sections[current] = "\n".join(lines).strip()
    return sections


def summarize_section(body: Optional[str]) -> Optional[str]:
    """First ten non-heading lines of a section, `**Label**:` flattened to `Label:`."""
    if not body:
        return None
    kept = []
    for line in body.split("\n"):
        if not line.strip() or line.startswith("#"):
            continue
        line = _BOLD_LABEL.sub(r"\1:", line).strip()
        if line:
            kept.append(line)
    return "\n".join(kept[:SECTION_LINE_LIMIT]) or None


class FileContextRepository(IContextRepository):
    """Company context stored as a markdown file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def get_context(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except OSError as e:
            logger.warning(f"Could not read company context: {e}")
            return ""

    def save_context(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(content, encoding="utf-8")
        logger.info(f"Company context saved to {self.path}")

    def build_context_prompt(self) -> str:
        sections = parse_sections(self.get_context())
        parts = []
        for header, label in PROMPT_SECTIONS:
            summary = summarize_section(sections.get(header))
            if summary:
                parts.append(f"{label}:\n{summary}")

        if not parts:
            return ""
        body = "\n\n".join(parts)
        return f"COMPANY & PROJECT CONTEXT:\n{body}\n\n{CONTEXT_INSTRUCTIONS}"

    def get_stats(self) -> Dict[str, Any]:
        content = self.get_context()
        sections = parse_sections(content)
        return {
            "totalSections": len(sections),
            "totalCharacters": len(content),
            "totalLines": len(content.split("\n")),
            "sections": list(sections),
            "lastModified": self.last_modified(),
        }

    def last_modified(self) -> Optional[str]:
        try:
            mtime = self.path.stat().st_mtime
        except OSError:
            return None
        return datetime.fromtimestamp(mtime).astimezone().isoformat()
