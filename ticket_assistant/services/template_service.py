"""
Template service - turns a TicketDraft into a ClickUp task payload.
"""
from typing import List, Optional

from ticket_assistant.domain.models import TicketDraft, TaskPayload

AUTO_GENERATED_TAG = "auto-generated"


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def format_description(draft: TicketDraft) -> str:
    """Compose the markdown task description, one `##` section per populated field."""
    sections: List[str] = []

    if draft.summary:
        sections.append(f"## Summary\n{draft.summary}")
    if draft.description:
        sections.append(f"## Description\n{draft.description}")

    if draft.type == "bug":
        if draft.steps_to_reproduce:
            steps = "\n".join(f"{i}. {step}" for i, step in enumerate(draft.steps_to_reproduce, 1))
            sections.append(f"## Steps to Reproduce\n{steps}")
        if draft.expected_behavior:
            sections.append(f"## Expected Behavior\n{draft.expected_behavior}")
        if draft.actual_behavior:
            sections.append(f"## Actual Behavior\n{draft.actual_behavior}")

    if draft.acceptance_criteria:
        criteria = "\n".join(f"- [ ] {c}" for c in draft.acceptance_criteria)
        sections.append(f"## Acceptance Criteria\n{criteria}")
    if draft.technical_notes:
        sections.append(f"## Technical Notes\n{draft.technical_notes}")
    if draft.testing_notes:
        sections.append(f"## Testing Notes\n{draft.testing_notes}")
    if draft.dependencies:
        sections.append(f"## Dependencies\n{_bullets(draft.dependencies)}")
    if draft.affected_components:
        sections.append(f"## Affected Components\n{_bullets(draft.affected_components)}")

    estimation = []
    if draft.estimated_complexity:
        estimation.append(f"**Complexity:** {draft.estimated_complexity}")
    if draft.estimated_hours:
        estimation.append(f"**Estimated Hours:** {draft.estimated_hours:g}")
    if estimation:
        sections.append("## Estimation\n" + "\n".join(estimation))

    return "\n\n".join(sections)


def format_tags(tags: List[str], ticket_type: Optional[str] = None) -> List[str]:
    """Draft tags, then the ticket type, then the auto-generated marker; no duplicates."""
    result: List[str] = []
    for tag in [*tags, ticket_type, AUTO_GENERATED_TAG]:
        if tag and tag not in result:
            result.append(tag)
    return result


def apply_template(
    draft: TicketDraft,
    priority: Optional[str] = None,
    assignee: Optional[str] = None,
    list_id: Optional[str] = None,
    due_date: Optional[int] = None
) -> TaskPayload:
    """Build the task payload. An explicit `priority` overrides the draft's."""
    return TaskPayload(
        name=draft.title,
        description=format_description(draft),
        priority=priority or draft.priority,
        tags=format_tags(draft.tags, draft.type),
        assignees=[assignee] if assignee else [],
        list_id=list_id,
        due_date=due_date,
    )
