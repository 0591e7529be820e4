from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import StrEnum

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.events.exceptions import InvalidDiscount


class VisitStatus(StrEnum):
    STARTED = "started"
    COMPLETED = "completed"


class PaymentType(StrEnum):
    CASH = "cash"
    CARD = "card"


class DiscountType(StrEnum):
    NONE = "none"
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True, slots=True)
class LineItem(EntityMixin):
    service_id: str
    quantity: int


@dataclass(frozen=True, slots=True)
class DiscountSpec(EntityMixin):
    type: DiscountType = DiscountType.NONE
    value: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", DiscountType(self.type))
        value = self.value
        if not isinstance(value, Decimal):
            try:
                value = Decimal(str(value))
            except InvalidOperation as exc:
                raise InvalidDiscount(f"Invalid discount value: {self.value!r}") from exc
        # NaN e Infinity quebram as comparações do cálculo
        if not value.is_finite():
            raise InvalidDiscount("Discount value must be a finite number")
        object.__setattr__(self, "value", value)

    @classmethod
    def none(cls) -> DiscountSpec:
        return cls()

    @classmethod
    def percentage(cls, value: Decimal | int | str) -> DiscountSpec:
        return cls(DiscountType.PERCENTAGE, value)

    @classmethod
    def fixed(cls, value: Decimal | int | str) -> DiscountSpec:
        return cls(DiscountType.FIXED, value)

    @property
    def is_none(self) -> bool:
        return self.type is DiscountType.NONE

    @property
    def effective_value(self) -> Decimal:
        """Com tipo `none` o valor digitado é ignorado."""
        return Decimal("0") if self.is_none else self.value


@dataclass(frozen=True, slots=True)
class PlanStep(EntityMixin):
    description: str
    completed: bool = False


@dataclass(frozen=True, slots=True)
class XrayImageRef(EntityMixin):
    url: str
    filename: str = ""
    size: int = 0


@dataclass(frozen=True, slots=True)
class VisitCompletion(EntityMixin):
    """Snapshot imutável do formulário de conclusão, pronto para serializar."""
    diagnosis: str
    line_items: tuple[LineItem, ...]
    discount: DiscountSpec = field(default_factory=DiscountSpec.none)
    payment_type: PaymentType = PaymentType.CASH
    affected_teeth: frozenset[str] = frozenset()
    plan_steps: tuple[PlanStep, ...] = ()
    comment: str | None = None
    xray_image_refs: tuple[str, ...] = ()
