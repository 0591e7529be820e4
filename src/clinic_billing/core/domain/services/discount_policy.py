"""
Política de desconto e cálculo do total de uma consulta.

Toda a aritmética é feita em `Decimal`; o arredondamento (ROUND_HALF_UP para
a menor unidade da moeda) acontece apenas no passo final.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from clinic_billing.core.domain.entities.service_entity import ServiceCatalog
from clinic_billing.core.domain.entities.visit_entity import DiscountSpec, DiscountType, LineItem

ZERO = Decimal("0")
HUNDRED = Decimal("100")
DEFAULT_QUANTUM = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class BreakdownLine:
    service_id: str
    service_name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


@dataclass(frozen=True, slots=True)
class BillingBreakdown:
    lines: tuple[BreakdownLine, ...]
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize(amount: Decimal, quantum: Decimal = DEFAULT_QUANTUM) -> Decimal:
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def subtotal_of(line_items: Iterable[LineItem], catalog: ServiceCatalog) -> Decimal:
    return sum(
        (catalog.price(item.service_id) * item.quantity for item in line_items),
        start=ZERO,
    )


def discount_amount_for(subtotal: Decimal, discount: DiscountSpec) -> Decimal:
    """Valor bruto do desconto, sem arredondamento."""
    if discount.type is DiscountType.PERCENTAGE:
        pct = min(max(discount.value, ZERO), HUNDRED)
        return subtotal * pct / HUNDRED
    if discount.type is DiscountType.FIXED:
        return discount.value
    return ZERO


def compute_total(
    line_items: Iterable[LineItem],
    catalog: ServiceCatalog,
    discount: DiscountSpec,
    *,
    quantum: Decimal = DEFAULT_QUANTUM,
) -> Decimal:
    subtotal = subtotal_of(line_items, catalog)
    total = max(ZERO, subtotal - discount_amount_for(subtotal, discount))
    return quantize(total, quantum)


def compute_breakdown(
    line_items: Iterable[LineItem],
    catalog: ServiceCatalog,
    discount: DiscountSpec,
    *,
    quantum: Decimal = DEFAULT_QUANTUM,
) -> BillingBreakdown:
    """
    Mesmo cálculo de `compute_total`, detalhado por linha.
    O desconto reportado é o efetivamente aplicado (nunca maior que o subtotal).
    """
    lines: list[BreakdownLine] = []
    for item in line_items:
        service = catalog.get(item.service_id)
        lines.append(
            BreakdownLine(
                service_id=service.id,
                service_name=service.name,
                unit_price=service.price,
                quantity=item.quantity,
                line_total=service.price * item.quantity,
            )
        )

    subtotal = sum((ln.line_total for ln in lines), start=ZERO)
    raw_total = max(ZERO, subtotal - discount_amount_for(subtotal, discount))
    total = quantize(raw_total, quantum)
    return BillingBreakdown(
        lines=tuple(lines),
        subtotal=quantize(subtotal, quantum),
        discount_amount=quantize(subtotal - raw_total, quantum),
        total=total,
    )
