"""
Ponto de entrada da aplicação cliente.

Configura o logging e devolve o container DI já com os handlers
registrados. Equivale ao que `manage.py`/`asgi.py` fazem num projeto web.
"""
import structlog

from clinic_billing.adapters.config.composition_root import setup_di_container_from_settings
from clinic_billing.config.structlog_config import configure_logging


def bootstrap(settings=None):
    if settings is None:
        from clinic_billing.config import settings

    configure_logging(level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
    container = setup_di_container_from_settings(settings)
    structlog.get_logger(__name__).info(
        "app.bootstrapped", api_base=settings.CLINIC_API_BASE
    )
    return container
