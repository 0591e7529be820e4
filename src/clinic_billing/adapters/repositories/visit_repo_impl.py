from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from clinic_billing.adapters.api_clients.clinic_api_client import ClinicAPIClient
from clinic_billing.core.application.dtos.clinic_api_dtos import (
    VisitCompletionPayloadDTO,
    VisitRecordDTO,
)
from clinic_billing.core.domain.entities.visit_entity import VisitCompletion, VisitStatus
from clinic_billing.core.domain.entities.visit_record_entity import VisitRecordEntity
from clinic_billing.core.domain.repositories.visit_repository import VisitRepository


def _to_entity(dto: VisitRecordDTO) -> VisitRecordEntity:
    return VisitRecordEntity.from_dto(dto)


class VisitRepoImpl(VisitRepository):
    def __init__(self, client: ClinicAPIClient):
        self.client = client

    def complete(
        self,
        visit_id: str,
        completion: VisitCompletion,
        *,
        idempotency_key: uuid.UUID,
        discount_token: str | None = None,
        expected_total: Decimal | None = None,
    ) -> VisitRecordEntity:
        payload = VisitCompletionPayloadDTO.from_completion(
            completion, discount_token=discount_token, expected_total=expected_total
        )
        dto = self.client.complete_visit(visit_id, payload, idempotency_key=idempotency_key)
        return _to_entity(dto)

    def save_draft(
        self,
        visit_id: str,
        completion: VisitCompletion,
        *,
        discount_token: str | None = None,
    ) -> None:
        payload = VisitCompletionPayloadDTO.from_completion(
            completion, discount_token=discount_token
        )
        self.client.save_visit_draft(visit_id, payload)

    def list_visits(
        self,
        date_from: date,
        date_to: date,
        status: VisitStatus | None = VisitStatus.COMPLETED,
    ) -> list[VisitRecordEntity]:
        dtos = self.client.list_visits(date_from, date_to, status=str(status) if status else None)
        return [_to_entity(d) for d in dtos]
