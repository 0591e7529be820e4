from __future__ import annotations

from collections.abc import Iterable

from clinic_billing.core.domain.entities.visit_entity import LineItem


class LineItemAccumulator:
    """
    Mapa `service_id -> quantidade` do formulário de conclusão de consulta.

    Um único escritor (o médico editando o formulário). A quantidade nunca
    fica em 0: ao chegar em 0 o item sai do mapa. A ordem de inserção é
    preservada para o snapshot.
    """

    def __init__(self, items: Iterable[LineItem] = ()) -> None:
        self._quantities: dict[str, int] = {}
        for item in items:
            if item.quantity >= 1:
                self._quantities[item.service_id] = self._quantities.get(item.service_id, 0) + item.quantity

    def __len__(self) -> int:
        return len(self._quantities)

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._quantities

    def __repr__(self) -> str:
        return f"LineItemAccumulator({self._quantities!r})"

    def quantity(self, service_id: str) -> int:
        return self._quantities.get(service_id, 0)

    def add(self, service_id: str) -> None:
        self._quantities[service_id] = self._quantities.get(service_id, 0) + 1

    def increment(self, service_id: str) -> None:
        if service_id in self._quantities:
            self._quantities[service_id] += 1

    def decrement(self, service_id: str) -> None:
        qty = self._quantities.get(service_id)
        if qty is None:
            return
        if qty <= 1:
            del self._quantities[service_id]
        else:
            self._quantities[service_id] = qty - 1

    def remove(self, service_id: str) -> None:
        self._quantities.pop(service_id, None)

    def clear(self) -> None:
        self._quantities.clear()

    def snapshot(self) -> tuple[LineItem, ...]:
        return tuple(LineItem(service_id=sid, quantity=qty) for sid, qty in self._quantities.items())
