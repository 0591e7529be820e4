from __future__ import annotations

import datetime as _dt
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from clinic_billing.core.domain.entities.visit_entity import (
    DiscountType,
    VisitCompletion,
    VisitStatus,
)


class ClinicBaseModel(BaseModel):
    """
    BaseModel padrão para a API da clínica:
    - Campos extras enviados pelo backend são ignorados.
    - Aceita tanto o nome do campo quanto o alias.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ───────────────────────────────────────────────
# Respostas
# ───────────────────────────────────────────────
class ServiceDTO(ClinicBaseModel):
    id:          str
    name:        str
    price:       Decimal
    duration:    int             = Field(default=30, ge=1)  # minutos
    is_active:   bool            = True
    description: str      | None = None
    created_at:  datetime | None = None

    @field_validator("price", mode="before")
    @classmethod
    def _price_as_text(cls, v: Any) -> Any:
        # float vindo do JSON vira Decimal pela representação textual
        return str(v) if isinstance(v, float) else v


class VisitServiceLineDTO(ClinicBaseModel):
    service_id:   str
    service_name: str | None = None
    price:        Decimal    = Decimal("0")
    quantity:     int        = 1
    subtotal:     Decimal    = Decimal("0")


class VisitRecordDTO(ClinicBaseModel):
    id:              str
    doctor_id:       str
    doctor_name:     str      | None = None
    date:            _dt.date
    status:          VisitStatus
    subtotal:        Decimal         = Decimal("0")
    discount_type:   str      | None = None
    discount_amount: Decimal         = Decimal("0")
    total:           Decimal         = Decimal("0")
    doctor_share:    Decimal  | None = None   # percentual do contrato (0-100)
    doctor_earning:  Decimal         = Decimal("0")
    payment_type:    str      | None = None
    services:        list[VisitServiceLineDTO] = Field(default_factory=list)
    completed_at:    datetime | None = None

    @field_validator(
        "subtotal", "discount_amount", "total", "doctor_share", "doctor_earning",
        mode="before",
    )
    @classmethod
    def _money_as_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, float) else v


class DiscountCapabilityDTO(ClinicBaseModel):
    doctor_id:    str      | None = None
    can_discount: bool            = False
    token:        str      | None = None
    expires_at:   datetime | None = None


class XrayUploadResponseDTO(ClinicBaseModel):
    url:      str
    filename: str = ""
    size:     int = 0


class DoctorEarningDTO(ClinicBaseModel):
    doctor_id:    str
    doctor_name:  str | None = None
    revenue:      Decimal    = Decimal("0")
    earning:      Decimal    = Decimal("0")
    visits_count: int        = Field(default=0, alias="visit_count")

    @field_validator("revenue", "earning", mode="before")
    @classmethod
    def _money_as_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, float) else v


class DailyReportDTO(ClinicBaseModel):
    date:            _dt.date
    patients_count:  int     = 0
    visits_count:    int     = 0
    total_revenue:   Decimal = Decimal("0")
    total_discount:  Decimal = Decimal("0")
    doctor_earnings: list[DoctorEarningDTO] = Field(default_factory=list)

    @field_validator("total_revenue", "total_discount", mode="before")
    @classmethod
    def _money_as_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, float) else v

    @field_validator("doctor_earnings", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> Any:
        return v or []


class MonthlyReportDTO(ClinicBaseModel):
    year:                  int
    month:                 int = Field(ge=1, le=12)
    patients_count:        int     = 0
    visits_count:          int     = 0
    total_revenue:         Decimal = Decimal("0")
    total_discount:        Decimal = Decimal("0")
    doctor_earnings:       list[DoctorEarningDTO] = Field(default_factory=list)
    total_doctor_earnings: Decimal = Decimal("0")
    total_expenses:        Decimal = Decimal("0")
    expenses_by_category:  dict[str, Decimal] = Field(default_factory=dict)
    total_salaries:        Decimal = Decimal("0")
    # lucro bruto/líquido são recalculados na entidade

    @field_validator(
        "total_revenue", "total_discount", "total_doctor_earnings",
        "total_expenses", "total_salaries",
        mode="before",
    )
    @classmethod
    def _money_as_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, float) else v

    @field_validator("expenses_by_category", mode="before")
    @classmethod
    def _category_amounts_as_text(cls, v: Any) -> Any:
        if not v:
            return {}
        return {k: str(a) if isinstance(a, float) else a for k, a in v.items()}

    @field_validator("doctor_earnings", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> Any:
        return v or []


class ApiErrorDTO(ClinicBaseModel):
    code:       str        = "ERROR"
    message:    str        = "An error occurred"
    request_id: str | None = None


class ApiErrorBodyDTO(ClinicBaseModel):
    error: ApiErrorDTO


# ───────────────────────────────────────────────
# Requisições
# ───────────────────────────────────────────────
class VisitLineItemPayloadDTO(ClinicBaseModel):
    service_id: str
    quantity:   int = Field(ge=1)


class PlanStepPayloadDTO(ClinicBaseModel):
    description: str
    completed:   bool = False


class VisitCompletionPayloadDTO(ClinicBaseModel):
    """
    Corpo de `POST visits/{id}/complete` e `PUT visits/{id}/draft`.
    Valores monetários trafegam como número JSON.
    """
    diagnosis:      str | None                    = None
    services:       list[VisitLineItemPayloadDTO] = Field(default_factory=list)
    discount_type:  DiscountType | None           = None
    discount_value: Decimal | None                = None
    payment_type:   str | None                    = None
    affected_teeth: list[str]                     = Field(default_factory=list)
    plan_steps:     list[PlanStepPayloadDTO]      = Field(default_factory=list)
    comment:        str | None                    = None
    xray_images:    list[str]                     = Field(default_factory=list)
    discount_token: str | None                    = None
    expected_total: Decimal | None                = None

    @field_serializer("discount_value", "expected_total")
    def _decimal_to_float(self, v: Decimal | None) -> float | None:
        return None if v is None else float(v)

    @classmethod
    def from_completion(
        cls,
        completion: VisitCompletion,
        *,
        discount_token: str | None = None,
        expected_total: Decimal | None = None,
    ) -> VisitCompletionPayloadDTO:
        discount = completion.discount
        return cls(
            diagnosis=completion.diagnosis or None,
            services=[
                VisitLineItemPayloadDTO(service_id=li.service_id, quantity=li.quantity)
                for li in completion.line_items
            ],
            # `none` não vai no payload: o backend só aceita percentage|fixed
            discount_type=None if discount.is_none else discount.type,
            discount_value=None if discount.is_none else discount.value,
            payment_type=str(completion.payment_type),
            affected_teeth=sorted(completion.affected_teeth),
            plan_steps=[
                PlanStepPayloadDTO(description=s.description, completed=s.completed)
                for s in completion.plan_steps
            ],
            comment=completion.comment or None,
            xray_images=list(completion.xray_image_refs),
            discount_token=discount_token,
            expected_total=expected_total,
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ServicePayloadDTO(ClinicBaseModel):
    name:        str | None     = None
    description: str | None     = None
    price:       Decimal | None = Field(default=None, ge=0)
    duration:    int | None     = Field(default=None, ge=5, le=480)
    is_active:   bool | None    = None

    @field_serializer("price")
    def _price_to_float(self, v: Decimal | None) -> float | None:
        return None if v is None else float(v)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
