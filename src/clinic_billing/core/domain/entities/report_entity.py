from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from clinic_billing.core.domain.entities._base import EntityMixin


@dataclass(frozen=True, slots=True)
class DoctorEarning(EntityMixin):
    doctor_id: str
    doctor_name: str | None = None
    revenue: Decimal = Decimal("0")
    earning: Decimal = Decimal("0")
    visits_count: int = 0


@dataclass(frozen=True, slots=True)
class DailyReport(EntityMixin):
    """Relatório do dia como o backend o consolida (pacientes novos + consultas)."""
    date: date
    patients_count: int = 0
    visits_count: int = 0
    total_revenue: Decimal = Decimal("0")
    total_discount: Decimal = Decimal("0")
    doctor_earnings: tuple[DoctorEarning, ...] = ()


@dataclass(frozen=True, slots=True)
class MonthlyReport(EntityMixin):
    """
    Relatório mensal com resumo financeiro.

    lucro bruto   = receita − repasse aos médicos
    lucro líquido = lucro bruto − despesas − salários
    """
    year: int
    month: int
    patients_count: int = 0
    visits_count: int = 0
    total_revenue: Decimal = Decimal("0")
    total_discount: Decimal = Decimal("0")
    doctor_earnings: tuple[DoctorEarning, ...] = ()
    total_doctor_earnings: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    expenses_by_category: dict[str, Decimal] = field(default_factory=dict)
    total_salaries: Decimal = Decimal("0")

    @property
    def gross_profit(self) -> Decimal:
        return self.total_revenue - self.total_doctor_earnings

    @property
    def net_profit(self) -> Decimal:
        return self.gross_profit - self.total_expenses - self.total_salaries
