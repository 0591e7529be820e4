from __future__ import annotations

from typing import Any

from clinic_billing.adapters.api_clients.clinic_api_client import ClinicAPIClient
from clinic_billing.core.domain.entities.service_entity import ServiceEntity
from clinic_billing.core.domain.repositories.service_catalog_repository import (
    ServiceCatalogRepository,
)


class ServiceCatalogRepoImpl(ServiceCatalogRepository):
    def __init__(self, client: ClinicAPIClient):
        self.client = client

    # ───────────────────────────────────────────────
    # Queries
    # ───────────────────────────────────────────────
    def list_services(self) -> list[ServiceEntity]:
        return [ServiceEntity.from_dto(dto) for dto in self.client.list_services()]

    # ───────────────────────────────────────────────
    # Persistência
    # ───────────────────────────────────────────────
    def create_service(self, data: dict[str, Any]) -> ServiceEntity:
        return ServiceEntity.from_dto(self.client.create_service(data))

    def update_service(self, service_id: str, data: dict[str, Any]) -> ServiceEntity:
        return ServiceEntity.from_dto(self.client.update_service(service_id, data))

    def delete_service(self, service_id: str) -> None:
        self.client.delete_service(service_id)
