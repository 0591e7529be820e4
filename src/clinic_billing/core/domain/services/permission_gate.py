from collections.abc import Mapping

from clinic_billing.core.domain.entities.visit_entity import DiscountSpec


def is_discount_allowed(doctor_id: str, permissions: Mapping[str, bool]) -> bool:
    """Ausência de entrada equivale a `False`."""
    return bool(permissions.get(doctor_id, False))


def effective_discount(discount: DiscountSpec, allowed: bool) -> DiscountSpec:
    """
    Desconto que a UI pode mostrar no preview. Sem permissão o desconto vira `none`.
    Não substitui a checagem no envio (ver BillingEngine).
    """
    return discount if allowed else DiscountSpec.none()
