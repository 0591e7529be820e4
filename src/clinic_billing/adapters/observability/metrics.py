from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

registry = CollectorRegistry()

VISIT_COMPLETION_TOTAL = Counter(
    "clinic_visit_completion_total",
    "Tentativas de conclusao de consulta por resultado",
    ["outcome"],
    registry=registry,
)

VISIT_BILLED_AMOUNT = Counter(
    "clinic_visit_billed_amount_total",
    "Soma dos totais faturados em consultas concluidas",
    ["payment_type"],
    registry=registry,
)

VISIT_DRAFT_TOTAL = Counter(
    "clinic_visit_draft_total",
    "Salvamentos de rascunho de consulta por resultado",
    ["outcome"],
    registry=registry,
)

CLINIC_API_LATENCY = Histogram(
    "clinic_api_request_duration_seconds",
    "Latencia das chamadas a API da clinica",
    ["method", "endpoint", "status"],
    registry=registry,
)


def metrics() -> tuple[bytes, str]:
    """Corpo e content-type prontos para um endpoint /metrics."""
    return generate_latest(registry), CONTENT_TYPE_LATEST
