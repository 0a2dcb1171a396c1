"""
Tests for the ticket template.
"""
import pytest

from ticket_assistant.domain.models import TicketDraft
from ticket_assistant.services.template_service import (
    AUTO_GENERATED_TAG, apply_template, format_description, format_tags
)


@pytest.fixture
def bug_draft() -> TicketDraft:
    return TicketDraft(
        title="Fix login 500",
        type="bug",
        priority="high",
        summary="Login fails.",
        description="Clicking login returns HTTP 500.",
        steps_to_reproduce=["Open /login", "Click login"],
        expected_behavior="User is logged in",
        actual_behavior="HTTP 500",
        acceptance_criteria=["Login works", "Regression test added"],
        tags=["auth"],
        estimated_complexity="low",
        estimated_hours=4,
        affected_components=["auth-service"],
    )


@pytest.mark.unit
class TestFormatDescription:

    def test_bug_sections_in_order(self, bug_draft):
        text = format_description(bug_draft)
        headers = [line for line in text.splitlines() if line.startswith("## ")]
        assert headers == [
            "## Summary",
            "## Description",
            "## Steps to Reproduce",
            "## Expected Behavior",
            "## Actual Behavior",
            "## Acceptance Criteria",
            "## Affected Components",
            "## Estimation",
        ]
        assert "1. Open /login\n2. Click login" in text
        assert "- [ ] Login works\n- [ ] Regression test added" in text
        assert "**Complexity:** low\n**Estimated Hours:** 4" in text

    def test_bug_only_sections_hidden_for_features(self, bug_draft):
        feature = bug_draft.model_copy(update={"type": "feature"})
        text = format_description(feature)
        assert "## Steps to Reproduce" not in text
        assert "## Expected Behavior" not in text

    def test_empty_sections_omitted(self):
        text = format_description(TicketDraft(title="Bare"))
        assert text == ""


@pytest.mark.unit
class TestFormatTags:

    def test_type_and_marker_appended(self):
        assert format_tags(["auth"], "bug") == ["auth", "bug", AUTO_GENERATED_TAG]

    def test_no_duplicates(self):
        assert format_tags(["bug", AUTO_GENERATED_TAG], "bug") == ["bug", AUTO_GENERATED_TAG]


@pytest.mark.unit
class TestApplyTemplate:

    def test_payload(self, bug_draft):
        payload = apply_template(bug_draft, assignee="john", list_id="L1", due_date=1716000000000)
        assert payload.name == "Fix login 500"
        assert payload.priority == "high"
        assert payload.priority_code == 2
        assert payload.assignees == ["john"]
        assert payload.list_id == "L1"
        assert payload.due_date == 1716000000000
        assert payload.tags == ["auth", "bug", AUTO_GENERATED_TAG]

    def test_explicit_priority_overrides_draft(self, bug_draft):
        payload = apply_template(bug_draft, priority="urgent")
        assert payload.priority == "urgent"
        assert payload.priority_code == 1

    def test_no_assignee(self, bug_draft):
        assert apply_template(bug_draft).assignees == []
