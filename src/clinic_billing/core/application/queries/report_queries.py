from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date

from clinic_billing.core.application.cqrs import QueryDTO


@dataclass(frozen=True)
class GetRevenueReportQuery(QueryDTO):
    """Resumo local de receita para um intervalo arbitrário."""
    date_from: date
    date_to: date

    def __post_init__(self) -> None:
        if self.date_to < self.date_from:
            raise ValueError("date_to deve ser maior ou igual a date_from")

    @classmethod
    def for_day(cls, day: date) -> GetRevenueReportQuery:
        return cls(date_from=day, date_to=day)

    @classmethod
    def for_month(cls, year: int, month: int) -> GetRevenueReportQuery:
        last_day = calendar.monthrange(year, month)[1]
        return cls(date_from=date(year, month, 1), date_to=date(year, month, last_day))


@dataclass(frozen=True)
class GetDailyReportQuery(QueryDTO):
    day: date


@dataclass(frozen=True)
class GetMonthlyReportQuery(QueryDTO):
    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"mês inválido: {self.month}")
