from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

import structlog

from clinic_billing.core.domain.entities.visit_record_entity import VisitRecordEntity
from clinic_billing.core.domain.repositories.visit_repository import VisitRepository
from clinic_billing.core.domain.services.discount_policy import DEFAULT_QUANTUM, ZERO, quantize

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DoctorEarningSummary:
    doctor_id: str
    doctor_name: str | None
    visits_count: int
    revenue: Decimal
    earning: Decimal


@dataclass(frozen=True, slots=True)
class RevenueSummary:
    date_from: date
    date_to: date
    visits_count: int = 0
    total_revenue: Decimal = ZERO
    total_discount: Decimal = ZERO
    total_doctor_earnings: Decimal = ZERO
    by_payment_type: dict[str, Decimal] = field(default_factory=dict)
    doctor_earnings: tuple[DoctorEarningSummary, ...] = ()

    @property
    def gross_profit(self) -> Decimal:
        """Receita menos o repasse aos médicos."""
        return self.total_revenue - self.total_doctor_earnings


class RevenueReportService:
    """
    Agrega as consultas concluídas de um período em um resumo financeiro
    (receita, descontos concedidos e repasse por médico).
    """

    def __init__(self, visit_repo: VisitRepository, *, quantum: Decimal = DEFAULT_QUANTUM) -> None:
        self._visits = visit_repo
        self._quantum = quantum

    def report(self, date_from: date, date_to: date) -> RevenueSummary:
        records = self._visits.list_visits(date_from, date_to)
        summary = self.summarize(records, date_from, date_to)
        log.info(
            "report.revenue_built",
            date_from=date_from.isoformat(),
            date_to=date_to.isoformat(),
            visits=summary.visits_count,
            total_revenue=str(summary.total_revenue),
        )
        return summary

    def summarize(
        self, records: Iterable[VisitRecordEntity], date_from: date, date_to: date
    ) -> RevenueSummary:
        revenue = discount = earnings = ZERO
        count = 0
        by_payment: dict[str, Decimal] = {}
        per_doctor: dict[str, dict] = {}

        for rec in records:
            # o backend pode devolver consultas ainda abertas ou fora do intervalo
            if not rec.is_completed or not (date_from <= rec.date <= date_to):
                continue
            count += 1
            revenue += rec.total
            discount += rec.discount_amount
            earnings += rec.doctor_earning

            payment = rec.payment_type or "unknown"
            by_payment[payment] = by_payment.get(payment, ZERO) + rec.total

            doc = per_doctor.setdefault(
                rec.doctor_id,
                {"name": rec.doctor_name, "count": 0, "revenue": ZERO, "earning": ZERO},
            )
            doc["name"] = doc["name"] or rec.doctor_name
            doc["count"] += 1
            doc["revenue"] += rec.total
            doc["earning"] += rec.doctor_earning

        q = self._quantum
        doctors = tuple(
            sorted(
                (
                    DoctorEarningSummary(
                        doctor_id=doctor_id,
                        doctor_name=d["name"],
                        visits_count=d["count"],
                        revenue=quantize(d["revenue"], q),
                        earning=quantize(d["earning"], q),
                    )
                    for doctor_id, d in per_doctor.items()
                ),
                key=lambda s: (-s.revenue, s.doctor_id),
            )
        )
        return RevenueSummary(
            date_from=date_from,
            date_to=date_to,
            visits_count=count,
            total_revenue=quantize(revenue, q),
            total_discount=quantize(discount, q),
            total_doctor_earnings=quantize(earnings, q),
            by_payment_type={k: quantize(v, q) for k, v in sorted(by_payment.items())},
            doctor_earnings=doctors,
        )
