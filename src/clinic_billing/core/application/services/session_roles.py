"""
Sessões por papel do usuário logado.

Cada papel recebe um objeto próprio que expõe apenas as operações do seu
contrato; operações de outro papel simplesmente não existem na sessão.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import StrEnum

import structlog

from clinic_billing.core.application.commands.permission_commands import (
    SetDiscountPermissionCommand,
)
from clinic_billing.core.application.commands.service_commands import (
    CreateServiceCommand,
    DeleteServiceCommand,
    UpdateServiceCommand,
)
from clinic_billing.core.application.commands.visit_commands import (
    CompleteVisitCommand,
    SaveVisitDraftCommand,
)
from clinic_billing.core.application.commands.xray_commands import (
    DeleteXrayImageCommand,
    UploadXrayImageCommand,
)
from clinic_billing.core.application.cqrs import BaseService
from clinic_billing.core.application.queries.billing_queries import (
    GetDiscountCapabilityQuery,
    PreviewVisitTotalQuery,
)
from clinic_billing.core.application.queries.report_queries import (
    GetDailyReportQuery,
    GetMonthlyReportQuery,
    GetRevenueReportQuery,
)
from clinic_billing.core.application.queries.service_queries import ListServicesQuery
from clinic_billing.core.application.services.revenue_report_service import RevenueSummary
from clinic_billing.core.domain.entities.permission_entity import DiscountCapability
from clinic_billing.core.domain.entities.receipt_entity import Receipt
from clinic_billing.core.domain.entities.report_entity import DailyReport, MonthlyReport
from clinic_billing.core.domain.entities.service_entity import ServiceEntity
from clinic_billing.core.domain.entities.visit_entity import XrayImageRef
from clinic_billing.core.domain.entities.visit_form import VisitCompletionForm
from clinic_billing.core.domain.events.exceptions import RoleNotAllowed
from clinic_billing.core.domain.services.discount_policy import BillingBreakdown

log = structlog.get_logger(__name__)


class SessionRole(StrEnum):
    SUPERADMIN = "superadmin"
    BOSS = "boss"
    DOCTOR = "doctor"
    RECEPTIONIST = "receptionist"


@dataclass(frozen=True, slots=True)
class SessionUser:
    id: str
    role: SessionRole
    clinic_id: str | None = None
    name: str | None = None


# ───────────────────────────────────────────────
# Fachada sobre os buses
# ───────────────────────────────────────────────
class ClinicBillingFacade(BaseService):
    """Ponto único de entrada das sessões: tudo passa pelos buses CQRS."""

    # catálogo
    def list_services(self, *, active_only: bool = False) -> list[ServiceEntity]:
        return self.query(ListServicesQuery(active_only=active_only))

    def create_service(
        self, name: str, price: Decimal, duration: int = 30, description: str | None = None
    ) -> ServiceEntity:
        return self.execute(
            CreateServiceCommand(name=name, price=price, duration=duration, description=description)
        )

    def update_service(self, service_id: str, **changes) -> ServiceEntity:
        return self.execute(UpdateServiceCommand(service_id=service_id, **changes))

    def delete_service(self, service_id: str) -> None:
        self.execute(DeleteServiceCommand(service_id=service_id))

    # consulta
    def preview(
        self, doctor_id: str, form: VisitCompletionForm, permissions: dict[str, bool] | None = None
    ) -> BillingBreakdown:
        return self.query(
            PreviewVisitTotalQuery(doctor_id=doctor_id, form=form, permissions=permissions or {})
        )

    def complete_visit(self, visit_id: str, doctor_id: str, form: VisitCompletionForm) -> Receipt:
        return self.execute(CompleteVisitCommand(visit_id=visit_id, doctor_id=doctor_id, form=form))

    def save_draft(self, visit_id: str, doctor_id: str, form: VisitCompletionForm) -> None:
        self.execute(SaveVisitDraftCommand(visit_id=visit_id, doctor_id=doctor_id, form=form))

    # raio-x
    def upload_xray(self, filename: str, content: bytes, content_type: str = "image/jpeg") -> XrayImageRef:
        return self.execute(
            UploadXrayImageCommand(filename=filename, content=content, content_type=content_type)
        )

    def delete_xray(self, url: str) -> None:
        self.execute(DeleteXrayImageCommand(url=url))

    # permissões
    def discount_capability(self, doctor_id: str) -> DiscountCapability:
        return self.query(GetDiscountCapabilityQuery(doctor_id=doctor_id))

    def set_discount_permission(self, doctor_id: str, can_discount: bool) -> DiscountCapability:
        return self.execute(
            SetDiscountPermissionCommand(doctor_id=doctor_id, can_discount=can_discount)
        )

    # relatórios
    def revenue_report(self, query: GetRevenueReportQuery) -> RevenueSummary:
        return self.query(query)

    def daily_report(self, day: date) -> DailyReport:
        return self.query(GetDailyReportQuery(day=day))

    def monthly_report(self, year: int, month: int) -> MonthlyReport:
        return self.query(GetMonthlyReportQuery(year=year, month=month))


# ───────────────────────────────────────────────
# Sessões
# ───────────────────────────────────────────────
class _Session:
    role: SessionRole

    def __init__(self, user: SessionUser) -> None:
        self.user = user

    def __repr__(self) -> str:
        return f"{type(self).__name__}(user_id={self.user.id!r}, clinic_id={self.user.clinic_id!r})"


class _ClinicSession(_Session):
    def __init__(self, user: SessionUser, facade: ClinicBillingFacade) -> None:
        super().__init__(user)
        self._facade = facade


class SuperadminSession(_Session):
    """Administra a plataforma; não opera o faturamento de nenhuma clínica."""
    role = SessionRole.SUPERADMIN


class ReceptionistSession(_ClinicSession):
    role = SessionRole.RECEPTIONIST

    def list_services(self) -> list[ServiceEntity]:
        return self._facade.list_services(active_only=True)


class DoctorSession(_ClinicSession):
    role = SessionRole.DOCTOR

    def __init__(self, user: SessionUser, facade: ClinicBillingFacade) -> None:
        super().__init__(user, facade)
        self._capability: DiscountCapability | None = None

    @property
    def doctor_id(self) -> str:
        return self.user.id

    def list_services(self) -> list[ServiceEntity]:
        """Serviços que podem ser adicionados a uma consulta."""
        return self._facade.list_services(active_only=True)

    def new_form(self) -> VisitCompletionForm:
        return VisitCompletionForm()

    def refresh_capability(self) -> DiscountCapability:
        self._capability = self._facade.discount_capability(self.doctor_id)
        return self._capability

    def can_discount(self) -> bool:
        """Flag apenas para a UI; o envio consulta o backend novamente."""
        capability = self._capability or self.refresh_capability()
        return capability.can_discount and not capability.is_expired

    def preview(self, form: VisitCompletionForm) -> BillingBreakdown:
        return self._facade.preview(
            self.doctor_id, form, permissions={self.doctor_id: self.can_discount()}
        )

    def complete_visit(self, visit_id: str, form: VisitCompletionForm) -> Receipt:
        return self._facade.complete_visit(visit_id, self.doctor_id, form)

    def save_draft(self, visit_id: str, form: VisitCompletionForm) -> None:
        self._facade.save_draft(visit_id, self.doctor_id, form)

    def attach_xray(
        self,
        form: VisitCompletionForm,
        filename: str,
        content: bytes,
        content_type: str = "image/jpeg",
    ) -> XrayImageRef:
        ref = self._facade.upload_xray(filename, content, content_type)
        form.attach_xray(ref)
        return ref

    def remove_xray(self, form: VisitCompletionForm, url: str) -> None:
        self._facade.delete_xray(url)
        form.detach_xray(url)


class BossSession(_ClinicSession):
    role = SessionRole.BOSS

    # catálogo
    def list_services(self) -> list[ServiceEntity]:
        return self._facade.list_services()

    def create_service(
        self, name: str, price: Decimal, duration: int = 30, description: str | None = None
    ) -> ServiceEntity:
        return self._facade.create_service(name, price, duration, description)

    def update_service(self, service_id: str, **changes) -> ServiceEntity:
        return self._facade.update_service(service_id, **changes)

    def deactivate_service(self, service_id: str) -> ServiceEntity:
        return self._facade.update_service(service_id, is_active=False)

    def delete_service(self, service_id: str) -> None:
        self._facade.delete_service(service_id)

    # permissões
    def set_discount_permission(self, doctor_id: str, can_discount: bool) -> DiscountCapability:
        return self._facade.set_discount_permission(doctor_id, can_discount)

    def discount_capability(self, doctor_id: str) -> DiscountCapability:
        return self._facade.discount_capability(doctor_id)

    # relatórios consolidados pelo backend (pacientes, despesas, salários, lucro)
    def daily_report(self, day: date) -> DailyReport:
        return self._facade.daily_report(day)

    def monthly_report(self, year: int, month: int) -> MonthlyReport:
        return self._facade.monthly_report(year, month)

    # resumo de receita calculado a partir das consultas concluídas
    def daily_revenue(self, day: date) -> RevenueSummary:
        return self._facade.revenue_report(GetRevenueReportQuery.for_day(day))

    def monthly_revenue(self, year: int, month: int) -> RevenueSummary:
        return self._facade.revenue_report(GetRevenueReportQuery.for_month(year, month))

    def revenue_report(self, date_from: date, date_to: date) -> RevenueSummary:
        return self._facade.revenue_report(GetRevenueReportQuery(date_from=date_from, date_to=date_to))


_CLINIC_SESSIONS: dict[SessionRole, type[_ClinicSession]] = {
    SessionRole.BOSS: BossSession,
    SessionRole.DOCTOR: DoctorSession,
    SessionRole.RECEPTIONIST: ReceptionistSession,
}


def open_session(
    user: SessionUser, facade: ClinicBillingFacade
) -> SuperadminSession | BossSession | DoctorSession | ReceptionistSession:
    try:
        role = SessionRole(user.role)
    except ValueError:
        log.warning("session.unknown_role", user_id=user.id, role=str(user.role))
        raise RoleNotAllowed(f"Unknown role: {user.role}") from None

    if role is SessionRole.SUPERADMIN:
        return SuperadminSession(user)

    if not user.clinic_id:
        log.warning("session.missing_clinic", user_id=user.id, role=str(role))
        raise RoleNotAllowed(f"Role {role} requires a clinic")

    session = _CLINIC_SESSIONS[role](user, facade)
    log.debug("session.opened", user_id=user.id, role=str(role), clinic_id=user.clinic_id)
    return session
