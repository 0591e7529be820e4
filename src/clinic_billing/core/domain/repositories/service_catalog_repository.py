from abc import ABC, abstractmethod
from typing import Any

from clinic_billing.core.domain.entities.service_entity import ServiceEntity


class ServiceCatalogRepository(ABC):
    @abstractmethod
    def list_services(self) -> list[ServiceEntity]:
        """Lista todos os serviços da clínica (ativos e inativos)."""
        ...

    @abstractmethod
    def create_service(self, data: dict[str, Any]) -> ServiceEntity:
        """Cria um serviço (somente o dono da clínica)."""
        ...

    @abstractmethod
    def update_service(self, service_id: str, data: dict[str, Any]) -> ServiceEntity:
        ...

    @abstractmethod
    def delete_service(self, service_id: str) -> None:
        ...
