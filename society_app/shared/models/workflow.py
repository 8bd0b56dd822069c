# society_app/shared/models/workflow.py
"""
Шаблоны процессов выполнения услуг.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ServiceWorkflowTemplate(BaseModel):
    """Шаблон процесса для услуги."""

    template_id: int
    service_id: int
    template_name: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class WorkflowStep(BaseModel):
    """Шаг шаблона."""

    step_id: int
    template_id: int
    step_name: str
    step_order: int
    is_customer_facing: bool = True
    estimated_duration_hours: int | None = Field(default=None, ge=0)
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ServiceWorkflow(BaseModel):
    """Шаблон вместе с шагами, упорядоченными по step_order."""

    template: ServiceWorkflowTemplate
    steps: list[WorkflowStep] = Field(default_factory=list)

    @property
    def total_duration_hours(self) -> int:
        return sum(step.estimated_duration_hours or 0 for step in self.steps)
