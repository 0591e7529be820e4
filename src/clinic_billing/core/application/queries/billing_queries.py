from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from clinic_billing.core.application.cqrs import QueryDTO
from clinic_billing.core.domain.entities.visit_form import VisitCompletionForm


@dataclass(frozen=True)
class PreviewVisitTotalQuery(QueryDTO):
    """Total otimista para a UI; o mapa de permissões é apenas consultivo."""
    doctor_id: str
    form: VisitCompletionForm
    permissions: Mapping[str, bool] = field(default_factory=dict)

@dataclass(frozen=True)
class GetDiscountCapabilityQuery(QueryDTO):
    doctor_id: str
