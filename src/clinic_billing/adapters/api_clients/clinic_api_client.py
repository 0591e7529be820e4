from __future__ import annotations

import uuid
from datetime import date
from typing import Any
from urllib.parse import quote

import structlog

from clinic_billing.adapters.api_clients.base_api_client import BaseAPIClient
from clinic_billing.config import settings
from clinic_billing.core.application.dtos.clinic_api_dtos import (
    DailyReportDTO,
    DiscountCapabilityDTO,
    MonthlyReportDTO,
    ServiceDTO,
    VisitCompletionPayloadDTO,
    VisitRecordDTO,
    XrayUploadResponseDTO,
)

logger = structlog.get_logger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


class ClinicAPIClient(BaseAPIClient):
    """
    Wrapper de alto-nível para a API REST da clínica.
    O token (emitido fora deste pacote) vai como Bearer em todos os requests;
    o isolamento por clínica é responsabilidade do backend.
    """

    # ---------------------------------------------------------------- init ----------
    def __init__(
        self,
        *,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        retries: int | None = None,
    ) -> None:
        super().__init__(
            base_url=base_url or settings.CLINIC_API_BASE,
            default_headers={"Accept": "application/json"},
            timeout=timeout if timeout is not None else settings.CLINIC_API_TIMEOUT,
            retries=retries if retries is not None else settings.CLINIC_API_RETRIES,
        )
        token = token if token is not None else settings.CLINIC_API_TOKEN
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("ClinicAPIClient sem token; requests vão falhar com 401")
        logger.debug("ClinicAPIClient inicializado", base_url=self.base_url)

    # ---------------------------------------------------------------- services ------
    def list_services(self) -> list[ServiceDTO]:
        return self._get(
            "services", response_model=list[ServiceDTO], envelope="services"
        )

    def create_service(self, payload: dict[str, Any]) -> ServiceDTO:
        return self._post(
            "services", json_body=payload, response_model=ServiceDTO, envelope="service"
        )

    def update_service(self, service_id: str, payload: dict[str, Any]) -> ServiceDTO:
        return self._put(
            f"services/{quote(service_id, safe='')}",
            json_body=payload,
            response_model=ServiceDTO,
            envelope="service",
            endpoint="services/{id}",
        )

    def delete_service(self, service_id: str) -> None:
        self._delete(f"services/{quote(service_id, safe='')}", endpoint="services/{id}")

    # ---------------------------------------------------------------- visits --------
    def complete_visit(
        self,
        visit_id: str,
        payload: VisitCompletionPayloadDTO,
        *,
        idempotency_key: uuid.UUID,
    ) -> VisitRecordDTO:
        """
        Conclusão atômica. A mesma chave de idempotência reenviada
        não gera uma segunda cobrança no backend.
        """
        return self._post(
            f"visits/{quote(visit_id, safe='')}/complete",
            json_body=payload.to_payload(),
            headers={IDEMPOTENCY_HEADER: str(idempotency_key)},
            response_model=VisitRecordDTO,
            envelope="visit",
            endpoint="visits/{id}/complete",
        )

    def save_visit_draft(self, visit_id: str, payload: VisitCompletionPayloadDTO) -> None:
        self._put(
            f"visits/{quote(visit_id, safe='')}/draft",
            json_body=payload.to_payload(),
            endpoint="visits/{id}/draft",
        )

    def list_visits(
        self,
        date_from: date,
        date_to: date,
        status: str | None = "completed",
    ) -> list[VisitRecordDTO]:
        params: dict[str, Any] = {"from": date_from.isoformat(), "to": date_to.isoformat()}
        if status:
            params["status"] = status
        return self._get(
            "visits", params=params, response_model=list[VisitRecordDTO], envelope="visits"
        )

    # ---------------------------------------------------------------- x-ray ---------
    def upload_xray_image(
        self, filename: str, content: bytes, content_type: str
    ) -> XrayUploadResponseDTO:
        return self._post(
            "xray-images",
            files={"image": (filename, content, content_type)},
            response_model=XrayUploadResponseDTO,
        )

    def delete_xray_image(self, url: str) -> None:
        self._delete(f"xray-images/{quote(url, safe='')}", endpoint="xray-images/{url}")

    # ---------------------------------------------------------------- reports -------
    def get_daily_report(self, day: date) -> DailyReportDTO:
        return self._get(
            "reports/daily", params={"date": day.isoformat()}, response_model=DailyReportDTO
        )

    def get_monthly_report(self, year: int, month: int) -> MonthlyReportDTO:
        return self._get(
            "reports/monthly",
            params={"year": year, "month": month},
            response_model=MonthlyReportDTO,
        )

    # ---------------------------------------------------------------- permissions ---
    def get_discount_permission(self, doctor_id: str) -> DiscountCapabilityDTO:
        return self._get(
            f"doctors/{quote(doctor_id, safe='')}/discount-permission",
            response_model=DiscountCapabilityDTO,
            envelope="permission",
            endpoint="doctors/{id}/discount-permission",
        )

    def set_discount_permission(self, doctor_id: str, can_discount: bool) -> DiscountCapabilityDTO:
        return self._put(
            f"doctors/{quote(doctor_id, safe='')}/discount-permission",
            json_body={"can_discount": can_discount},
            response_model=DiscountCapabilityDTO,
            envelope="permission",
            endpoint="doctors/{id}/discount-permission",
        )
