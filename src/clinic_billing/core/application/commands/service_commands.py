from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from clinic_billing.core.application.cqrs import CommandDTO


@dataclass(frozen=True)
class CreateServiceCommand(CommandDTO):
    name: str
    price: Decimal
    duration: int = 30
    description: str | None = None

@dataclass(frozen=True)
class UpdateServiceCommand(CommandDTO):
    service_id: str
    name: str | None = None
    price: Decimal | None = None
    duration: int | None = None
    description: str | None = None
    is_active: bool | None = None

@dataclass(frozen=True)
class DeleteServiceCommand(CommandDTO):
    service_id: str
