import threading
from collections.abc import Callable

import structlog

from clinic_billing.core.domain.events.events import DomainEvent

logger = structlog.get_logger(__name__)

Listener = Callable[[DomainEvent], None]


def _listener_name(listener: Listener) -> str:
    return getattr(listener, "__qualname__", None) or type(listener).__name__


class EventDispatcher:
    """
    Entrega síncrona de eventos de domínio.

    Um listener inscrito em uma classe base recebe também as subclasses
    (inscrever em `DomainEvent` recebe tudo). Erro de listener é registrado
    e não impede a entrega aos seguintes; a faturação já concluída não
    depende deles.
    """

    def __init__(self) -> None:
        self._subs: dict[type[DomainEvent], list[Listener]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: type[DomainEvent], listener: Listener) -> None:
        with self._lock:
            self._subs.setdefault(event_type, []).append(listener)
        logger.debug("event.listener_added", event_type=event_type.__name__, listener=_listener_name(listener))

    def unsubscribe(self, event_type: type[DomainEvent], listener: Listener) -> None:
        with self._lock:
            listeners = self._subs.get(event_type, [])
            if listener in listeners:
                listeners.remove(listener)

    def _listeners_for(self, event: DomainEvent) -> list[Listener]:
        with self._lock:
            return [
                listener
                for klass in type(event).__mro__
                for listener in self._subs.get(klass, ())
            ]

    def dispatch(self, event: DomainEvent) -> int:
        """Entrega o evento e devolve quantos listeners falharam."""
        listeners = self._listeners_for(event)
        name = type(event).__name__
        logger.debug("event.dispatch", event_name=name, event_id=str(event.event_id), listeners=len(listeners))

        failures = 0
        for listener in listeners:
            try:
                listener(event)
            except Exception as exc:
                failures += 1
                logger.error(
                    "event.listener_failed",
                    event_name=name,
                    listener=_listener_name(listener),
                    error=str(exc),
                    exc_info=True,
                )
        return failures
