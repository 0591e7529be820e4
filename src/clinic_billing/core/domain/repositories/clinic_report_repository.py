from abc import ABC, abstractmethod
from datetime import date

from clinic_billing.core.domain.entities.report_entity import DailyReport, MonthlyReport


class ClinicReportRepository(ABC):
    """Relatórios consolidados pelo backend (pacientes, despesas, salários)."""

    @abstractmethod
    def daily_report(self, day: date) -> DailyReport:
        ...

    @abstractmethod
    def monthly_report(self, year: int, month: int) -> MonthlyReport:
        ...
