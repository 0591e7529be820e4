from __future__ import annotations

from dataclasses import dataclass

from clinic_billing.core.application.cqrs import CommandDTO
from clinic_billing.core.domain.entities.visit_form import VisitCompletionForm


@dataclass(frozen=True)
class CompleteVisitCommand(CommandDTO):
    visit_id: str
    doctor_id: str
    form: VisitCompletionForm

@dataclass(frozen=True)
class SaveVisitDraftCommand(CommandDTO):
    visit_id: str
    doctor_id: str
    form: VisitCompletionForm
