from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.entities.visit_entity import VisitStatus


@dataclass(slots=True)
class VisitRecordEntity(EntityMixin):
    id: str
    doctor_id: str
    date: date
    status: VisitStatus
    total: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    doctor_earning: Decimal = Decimal("0")
    doctor_share: Decimal | None = None
    payment_type: str | None = None
    doctor_name: str | None = None
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == VisitStatus.COMPLETED
