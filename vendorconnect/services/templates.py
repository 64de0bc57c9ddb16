"""
Brief template applier.

Expands a brief template onto a new task at creation time. Questions and
checklist items are copied by value so later template edits do not
reach tasks that already exist.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from ..database.models import TaskBriefTemplateDB
from ..database.repositories import ReferenceRepository

logger = logging.getLogger(__name__)


@dataclass
class AppliedTemplate:
    """Snapshot of a template at the moment a task is created from it."""
    template_id: int
    title: Optional[str]
    standard_brief: Optional[str]
    description: Optional[str]
    deliverable_quantity: Optional[int]
    questions: List[Dict[str, Any]] = field(default_factory=list)
    checklist: List[Dict[str, Any]] = field(default_factory=list)

    def task_fields(self, request_title: Optional[str], request_description: Optional[str]) -> Dict[str, Any]:
        """
        Task columns produced by this template.

        Template title/brief win over the request; request values are only
        used where the template leaves a field empty.
        """
        fields = {
            "template_id": self.template_id,
            "title": self.title or request_title,
            "description": self.standard_brief or self.description or request_description,
            "template_questions": self.questions,
            "template_checklist": self.checklist,
            "template_standard_brief": self.standard_brief,
            "template_description": self.description,
            "template_deliverable_quantity": self.deliverable_quantity,
        }
        if self.deliverable_quantity:
            fields["deliverable_quantity"] = self.deliverable_quantity
        return fields


def snapshot(template: TaskBriefTemplateDB) -> AppliedTemplate:
    questions = [
        {
            "id": question.id,
            "question": question.question_text,
            "type": question.question_type,
            "options": list(question.options or []),
        }
        for question in template.questions
    ]
    checklist = [
        {"checklist_id": checklist.id, "item_index": index, "text": text}
        for checklist in template.checklists
        for index, text in enumerate(checklist.items or [])
    ]
    return AppliedTemplate(
        template_id=template.id,
        title=template.title,
        standard_brief=template.standard_brief,
        description=template.description,
        deliverable_quantity=template.deliverable_quantity,
        questions=questions,
        checklist=checklist,
    )


class BriefTemplateApplier:
    """Resolves a template id into an AppliedTemplate snapshot."""

    def __init__(self, reference: ReferenceRepository):
        self.reference = reference

    async def apply(self, template_id: Optional[int], tenant_id: Optional[int]) -> Optional[AppliedTemplate]:
        """Snapshot of the template, or None when it does not resolve."""
        if not template_id:
            return None
        template = await self.reference.get_template(template_id, tenant_id)
        if template is None:
            logger.warning(f"Template {template_id} not found in tenant {tenant_id}; using request fields")
            return None
        return snapshot(template)
