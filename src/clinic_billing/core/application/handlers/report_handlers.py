from clinic_billing.core.application.cqrs import QueryHandler
from clinic_billing.core.application.queries.report_queries import (
    GetDailyReportQuery,
    GetMonthlyReportQuery,
    GetRevenueReportQuery,
)
from clinic_billing.core.application.services.revenue_report_service import (
    RevenueReportService,
    RevenueSummary,
)
from clinic_billing.core.domain.entities.report_entity import DailyReport, MonthlyReport
from clinic_billing.core.domain.repositories.clinic_report_repository import (
    ClinicReportRepository,
)


class GetRevenueReportHandler(QueryHandler[GetRevenueReportQuery, RevenueSummary]):
    def __init__(self, service: RevenueReportService):
        self.service = service

    def handle(self, query: GetRevenueReportQuery) -> RevenueSummary:
        return self.service.report(query.date_from, query.date_to)


class GetDailyReportHandler(QueryHandler[GetDailyReportQuery, DailyReport]):
    def __init__(self, repo: ClinicReportRepository):
        self.repo = repo

    def handle(self, query: GetDailyReportQuery) -> DailyReport:
        return self.repo.daily_report(query.day)


class GetMonthlyReportHandler(QueryHandler[GetMonthlyReportQuery, MonthlyReport]):
    def __init__(self, repo: ClinicReportRepository):
        self.repo = repo

    def handle(self, query: GetMonthlyReportQuery) -> MonthlyReport:
        return self.repo.monthly_report(query.year, query.month)
