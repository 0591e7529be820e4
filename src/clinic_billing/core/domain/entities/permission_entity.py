from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from clinic_billing.core.domain.entities._base import EntityMixin


@dataclass(frozen=True, slots=True)
class DiscountCapability(EntityMixin):
    """
    Permissão de desconto emitida pelo backend para um médico.
    O `token` segue no payload de conclusão para o backend revalidar.
    """
    doctor_id: str
    can_discount: bool = False
    token: str | None = None
    expires_at: datetime | None = None

    @classmethod
    def denied(cls, doctor_id: str) -> DiscountCapability:
        return cls(doctor_id=doctor_id, can_discount=False)

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        expires = self.expires_at if self.expires_at.tzinfo else self.expires_at.replace(tzinfo=UTC)
        return expires <= datetime.now(UTC)

    def as_permission_map(self) -> dict[str, bool]:
        return {self.doctor_id: self.can_discount and not self.is_expired}
