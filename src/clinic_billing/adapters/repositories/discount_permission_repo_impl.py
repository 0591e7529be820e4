from clinic_billing.adapters.api_clients.clinic_api_client import ClinicAPIClient
from clinic_billing.core.application.dtos.clinic_api_dtos import DiscountCapabilityDTO
from clinic_billing.core.domain.entities.permission_entity import DiscountCapability
from clinic_billing.core.domain.repositories.discount_permission_repository import (
    DiscountPermissionRepository,
)


def _to_entity(doctor_id: str, dto: DiscountCapabilityDTO) -> DiscountCapability:
    return DiscountCapability(
        doctor_id=dto.doctor_id or doctor_id,
        can_discount=dto.can_discount,
        token=dto.token,
        expires_at=dto.expires_at,
    )


class DiscountPermissionRepoImpl(DiscountPermissionRepository):
    """Sem cache: cada chamada reflete o que o backend decide naquele momento."""

    def __init__(self, client: ClinicAPIClient):
        self.client = client

    def get_capability(self, doctor_id: str) -> DiscountCapability:
        return _to_entity(doctor_id, self.client.get_discount_permission(doctor_id))

    def set_permission(self, doctor_id: str, can_discount: bool) -> DiscountCapability:
        return _to_entity(doctor_id, self.client.set_discount_permission(doctor_id, can_discount))
