from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal


# ───────────────────────────────────────────────
# Event Base e Domain Events
# ───────────────────────────────────────────────
@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

# ╭──────────────────────────────────────────────╮
# │ 1. Consultas                                 │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class VisitCompletedEvent(DomainEvent):
    visit_id: str
    doctor_id: str
    total: Decimal
    discount_amount: Decimal
    payment_type: str
    idempotency_key: uuid.UUID

@dataclass(frozen=True)
class VisitDraftSavedEvent(DomainEvent):
    visit_id: str
    doctor_id: str
    services_count: int

# ╭──────────────────────────────────────────────╮
# │ 2. Raio-X                                    │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class XrayImageUploadedEvent(DomainEvent):
    url: str
    size: int

@dataclass(frozen=True)
class XrayImageDeletedEvent(DomainEvent):
    url: str

# ╭──────────────────────────────────────────────╮
# │ 3. Catálogo e permissões                     │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class ServiceCatalogChangedEvent(DomainEvent):
    service_id: str
    action: str

@dataclass(frozen=True)
class DiscountPermissionChangedEvent(DomainEvent):
    doctor_id: str
    can_discount: bool
