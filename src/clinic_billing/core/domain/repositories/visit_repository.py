import uuid
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal

from clinic_billing.core.domain.entities.visit_entity import VisitCompletion, VisitStatus
from clinic_billing.core.domain.entities.visit_record_entity import VisitRecordEntity


class VisitRepository(ABC):
    @abstractmethod
    def complete(
        self,
        visit_id: str,
        completion: VisitCompletion,
        *,
        idempotency_key: uuid.UUID,
        discount_token: str | None = None,
        expected_total: Decimal | None = None,
    ) -> VisitRecordEntity:
        """
        Envia a conclusão da consulta em uma única chamada atômica.
        Retorna a consulta como o backend a registrou (total, repasse do médico).
        `expected_total` é o total calculado localmente, para conferência.
        """
        ...

    @abstractmethod
    def save_draft(
        self,
        visit_id: str,
        completion: VisitCompletion,
        *,
        discount_token: str | None = None,
    ) -> None:
        """Persiste o estado parcial sem concluir a consulta."""
        ...

    @abstractmethod
    def list_visits(
        self,
        date_from: date,
        date_to: date,
        status: VisitStatus | None = VisitStatus.COMPLETED,
    ) -> list[VisitRecordEntity]:
        ...
