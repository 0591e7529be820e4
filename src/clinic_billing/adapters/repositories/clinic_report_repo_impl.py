from __future__ import annotations

from datetime import date

import structlog

from clinic_billing.adapters.api_clients.clinic_api_client import ClinicAPIClient
from clinic_billing.core.application.dtos.clinic_api_dtos import DoctorEarningDTO
from clinic_billing.core.domain.entities.report_entity import (
    DailyReport,
    DoctorEarning,
    MonthlyReport,
)
from clinic_billing.core.domain.repositories.clinic_report_repository import (
    ClinicReportRepository,
)

log = structlog.get_logger(__name__)


def _earnings(dtos: list[DoctorEarningDTO]) -> tuple[DoctorEarning, ...]:
    # ordem estável: maior receita primeiro
    rows = [DoctorEarning.from_dto(d) for d in dtos]
    return tuple(sorted(rows, key=lambda r: (-r.revenue, r.doctor_id)))


class ClinicReportRepoImpl(ClinicReportRepository):
    def __init__(self, client: ClinicAPIClient):
        self.client = client

    def daily_report(self, day: date) -> DailyReport:
        dto = self.client.get_daily_report(day)
        return DailyReport(
            date=dto.date,
            patients_count=dto.patients_count,
            visits_count=dto.visits_count,
            total_revenue=dto.total_revenue,
            total_discount=dto.total_discount,
            doctor_earnings=_earnings(dto.doctor_earnings),
        )

    def monthly_report(self, year: int, month: int) -> MonthlyReport:
        dto = self.client.get_monthly_report(year, month)
        if (dto.year, dto.month) != (year, month):
            log.warning(
                "report.period_mismatch",
                requested=f"{year}-{month:02d}",
                received=f"{dto.year}-{dto.month:02d}",
            )
        return MonthlyReport(
            year=dto.year,
            month=dto.month,
            patients_count=dto.patients_count,
            visits_count=dto.visits_count,
            total_revenue=dto.total_revenue,
            total_discount=dto.total_discount,
            doctor_earnings=_earnings(dto.doctor_earnings),
            total_doctor_earnings=dto.total_doctor_earnings,
            total_expenses=dto.total_expenses,
            expenses_by_category=dict(dto.expenses_by_category),
            total_salaries=dto.total_salaries,
        )
