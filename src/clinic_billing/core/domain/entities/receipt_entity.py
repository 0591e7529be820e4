from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.entities.visit_entity import DiscountSpec, PaymentType


@dataclass(frozen=True, slots=True)
class ReceiptLine(EntityMixin):
    service_id: str
    service_name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


@dataclass(frozen=True, slots=True)
class Receipt(EntityMixin):
    visit_id: str
    doctor_id: str
    lines: tuple[ReceiptLine, ...]
    subtotal: Decimal
    discount: DiscountSpec
    discount_amount: Decimal
    total: Decimal
    payment_type: PaymentType
    idempotency_key: uuid.UUID
    completed_at: datetime
    # valores devolvidos pelo backend (contrato do médico etc.)
    backend_total: Decimal | None = None
    doctor_share: Decimal | None = None
    doctor_earning: Decimal | None = None

    @property
    def total_matches_backend(self) -> bool:
        return self.backend_total is None or self.backend_total == self.total
