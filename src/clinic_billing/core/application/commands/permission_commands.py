from __future__ import annotations

from dataclasses import dataclass

from clinic_billing.core.application.cqrs import CommandDTO


@dataclass(frozen=True)
class SetDiscountPermissionCommand(CommandDTO):
    doctor_id: str
    can_discount: bool
