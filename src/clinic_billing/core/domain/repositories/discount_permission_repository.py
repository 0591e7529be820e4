from abc import ABC, abstractmethod

from clinic_billing.core.domain.entities.permission_entity import DiscountCapability


class DiscountPermissionRepository(ABC):
    @abstractmethod
    def get_capability(self, doctor_id: str) -> DiscountCapability:
        """
        Busca no backend a permissão de desconto vigente do médico.
        Chamado a cada envio com desconto; nunca cacheado no cliente.
        """
        ...

    @abstractmethod
    def set_permission(self, doctor_id: str, can_discount: bool) -> DiscountCapability:
        ...
