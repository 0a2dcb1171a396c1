"""
Tests for the file-backed company context.
"""
import pytest

from ticket_assistant.infrastructure.context_repository import (
    SECTION_LINE_LIMIT, parse_sections, summarize_section
)

SAMPLE = """# Company & Project Context

Intro text that belongs to no section.

## Company Information
**Name**: Example Labs
**Domain**: Scheduling

## Tech Stack
- Python, FastAPI
- PostgreSQL
### Details
- Kubernetes

## Notes
Free-form notes
"""


@pytest.mark.unit
class TestParsing:

    def test_parse_sections(self):
        sections = parse_sections(SAMPLE)
        assert list(sections) == ["Company Information", "Tech Stack", "Notes"]
        assert sections["Notes"] == "Free-form notes"

    def test_summarize_flattens_bold_labels(self):
        summary = summarize_section(parse_sections(SAMPLE)["Company Information"])
        assert summary == "Name: Example Labs\nDomain: Scheduling"

    def test_summarize_skips_headings(self):
        summary = summarize_section(parse_sections(SAMPLE)["Tech Stack"])
        assert "### Details" not in summary
        assert "- Kubernetes" in summary

    def test_summarize_keeps_first_lines_only(self):
        body = "\n".join(f"- item {i}" for i in range(25))
        assert len(summarize_section(body).splitlines()) == SECTION_LINE_LIMIT

    def test_summarize_empty(self):
        assert summarize_section(None) is None
        assert summarize_section("\n\n") is None


@pytest.mark.unit
class TestFileContextRepository:

    def test_missing_file_is_empty_context(self, context_repository):
        assert context_repository.get_context() == ""
        assert context_repository.build_context_prompt() == ""
        assert context_repository.last_modified() is None

    def test_save_creates_directory(self, context_repository):
        context_repository.save_context(SAMPLE)

        assert context_repository.path.exists()
        assert context_repository.get_context() == SAMPLE
        assert context_repository.last_modified() is not None

    def test_context_prompt(self, context_repository):
        context_repository.save_context(SAMPLE)

        prompt = context_repository.build_context_prompt()

        assert prompt.startswith("COMPANY & PROJECT CONTEXT:")
        assert "COMPANY CONTEXT:\nName: Example Labs" in prompt
        assert "TECH STACK:\n- Python, FastAPI" in prompt
        # sections without a prompt label are not included
        assert "Free-form notes" not in prompt
        assert prompt.index("COMPANY CONTEXT") < prompt.index("TECH STACK")

    def test_context_without_known_sections(self, context_repository):
        context_repository.save_context("## Random\nstuff")
        assert context_repository.build_context_prompt() == ""

    def test_stats(self, context_repository):
        context_repository.save_context(SAMPLE)

        stats = context_repository.get_stats()

        assert stats["totalSections"] == 3
        assert stats["sections"] == ["Company Information", "Tech Stack", "Notes"]
        assert stats["totalCharacters"] == len(SAMPLE)
        assert stats["totalLines"] == len(SAMPLE.split("\n"))
        assert stats["lastModified"] is not None
