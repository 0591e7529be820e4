from dataclasses import dataclass

from clinic_billing.core.application.cqrs import QueryDTO


@dataclass(frozen=True)
class ListServicesQuery(QueryDTO):
    active_only: bool = False
