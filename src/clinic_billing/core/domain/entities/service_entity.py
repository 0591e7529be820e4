from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.events.exceptions import UnknownServiceError


@dataclass(slots=True)
class ServiceEntity(EntityMixin):
    id: str
    name: str
    price: Decimal
    duration: int
    is_active: bool = True
    description: str | None = None
    created_at: datetime | None = None


class ServiceCatalog:
    """
    Catálogo de serviços da clínica, carregado da API.
    Somente leitura: o faturamento consulta preços, nunca altera serviços.
    """

    def __init__(self, services: Iterable[ServiceEntity]) -> None:
        self._by_id: dict[str, ServiceEntity] = {s.id: s for s in services}

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._by_id

    def __iter__(self) -> Iterator[ServiceEntity]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, service_id: str) -> ServiceEntity:
        try:
            return self._by_id[service_id]
        except KeyError:
            raise UnknownServiceError(service_id) from None

    def price(self, service_id: str) -> Decimal:
        return self.get(service_id).price

    def active(self) -> list[ServiceEntity]:
        """Serviços que podem ser adicionados a uma nova consulta."""
        return [s for s in self._by_id.values() if s.is_active]
