"""
Motor de faturamento de consultas.

Compõe catálogo, acumulador de itens, política de desconto e a permissão
emitida pelo backend para:
  • calcular o total exibido na tela (preview);
  • concluir a consulta em uma única chamada ao backend (com Idempotency-Key);
  • salvar rascunhos sem as validações de conteúdo.

Toda validação local acontece antes de qualquer chamada de escrita.
"""
from __future__ import annotations

import threading
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal

import structlog
from prometheus_client import Counter

from clinic_billing.adapters.observability.metrics import (
    VISIT_BILLED_AMOUNT,
    VISIT_COMPLETION_TOTAL,
    VISIT_DRAFT_TOTAL,
)
from clinic_billing.core.domain.entities.receipt_entity import Receipt, ReceiptLine
from clinic_billing.core.domain.entities.service_entity import ServiceCatalog
from clinic_billing.core.domain.entities.visit_entity import DiscountSpec, VisitCompletion
from clinic_billing.core.domain.entities.visit_form import VisitCompletionForm
from clinic_billing.core.domain.events.events import (
    ServiceCatalogChangedEvent,
    VisitCompletedEvent,
    VisitDraftSavedEvent,
)
from clinic_billing.core.domain.events.exceptions import (
    BillingPermissionError,
    BillingValidationError,
    DiscountNotPermitted,
    EmptyDiagnosis,
    InvalidDiscount,
    InvalidQuantity,
    NoServicesSelected,
    ResponseContractError,
    SubmissionInProgress,
    TransportError,
    VisitAlreadyCompleted,
)
from clinic_billing.core.domain.repositories.discount_permission_repository import (
    DiscountPermissionRepository,
)
from clinic_billing.core.domain.repositories.service_catalog_repository import (
    ServiceCatalogRepository,
)
from clinic_billing.core.domain.repositories.visit_repository import VisitRepository
from clinic_billing.core.domain.services.discount_policy import (
    DEFAULT_QUANTUM,
    ZERO,
    BillingBreakdown,
    compute_breakdown,
)
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher
from clinic_billing.core.domain.services.permission_gate import (
    effective_discount,
    is_discount_allowed,
)

log = structlog.get_logger(__name__)


class BillingEngine:
    def __init__(
        self,
        catalog_repo: ServiceCatalogRepository,
        visit_repo: VisitRepository,
        permission_repo: DiscountPermissionRepository,
        dispatcher: EventDispatcher | None = None,
        *,
        quantum: Decimal = DEFAULT_QUANTUM,
    ) -> None:
        self._catalog_repo = catalog_repo
        self._visits = visit_repo
        self._permissions = permission_repo
        self._dispatcher = dispatcher
        self._quantum = quantum

        self._catalog: ServiceCatalog | None = None
        self._lock = threading.Lock()
        self._in_flight: set[str] = set()
        self._completed: set[str] = set()
        # chave reaproveitada quando a tentativa anterior caiu por falha de rede
        self._pending_keys: dict[str, uuid.UUID] = {}

    # ╭──────────────────────────────────────────────╮
    # │ Catálogo                                     │
    # ╰──────────────────────────────────────────────╯
    def catalog(self) -> ServiceCatalog:
        if self._catalog is None:
            self._catalog = ServiceCatalog(self._catalog_repo.list_services())
            log.debug("billing.catalog_loaded", services=len(self._catalog))
        return self._catalog

    def invalidate_catalog(self, event: ServiceCatalogChangedEvent | None = None) -> None:
        self._catalog = None
        log.debug(
            "billing.catalog_invalidated",
            service_id=getattr(event, "service_id", None),
        )

    # ╭──────────────────────────────────────────────╮
    # │ Preview                                      │
    # ╰──────────────────────────────────────────────╯
    def preview(
        self,
        form: VisitCompletionForm,
        *,
        doctor_id: str | None = None,
        permissions: Mapping[str, bool] | None = None,
    ) -> BillingBreakdown:
        """
        Total otimista para a tela. Com um mapa de permissões informado,
        o desconto de quem não pode descontar é exibido como `none`.
        Nada é enviado ao backend além da leitura do catálogo.
        """
        discount = form.discount
        self._validate_discount(discount)
        if permissions is not None:
            allowed = doctor_id is not None and is_discount_allowed(doctor_id, permissions)
            discount = effective_discount(discount, allowed)
        return compute_breakdown(
            form.items.snapshot(), self.catalog(), discount, quantum=self._quantum
        )

    # ╭──────────────────────────────────────────────╮
    # │ Conclusão                                    │
    # ╰──────────────────────────────────────────────╯
    def complete_visit(
        self, visit_id: str, doctor_id: str, form: VisitCompletionForm
    ) -> Receipt:
        completion = form.to_completion()
        blog = log.bind(visit_id=visit_id, doctor_id=doctor_id)

        with self._submission(visit_id, blog, VISIT_COMPLETION_TOTAL):
            try:
                self._validate_completion(completion)
                catalog = self.catalog()
                self._ensure_known_services(completion, catalog)
                token = self._authorize_discount(doctor_id, completion.discount, blog)
            except BillingValidationError as exc:
                VISIT_COMPLETION_TOTAL.labels(outcome="validation_error").inc()
                blog.info("billing.validation_failed", code=exc.code, error=exc.message)
                raise
            except BillingPermissionError:
                VISIT_COMPLETION_TOTAL.labels(outcome="permission_denied").inc()
                raise

            breakdown = compute_breakdown(
                completion.line_items, catalog, completion.discount, quantum=self._quantum
            )
            key = self._pending_keys.get(visit_id) or uuid.uuid4()

            try:
                record = self._visits.complete(
                    visit_id,
                    completion,
                    idempotency_key=key,
                    discount_token=token,
                    expected_total=breakdown.total,
                )
            except ResponseContractError as exc:
                if not exc.accepted:
                    self._on_transport_error(visit_id, key, exc, blog)
                    raise
                # 2xx: cobrança aceita; o recibo sai do cálculo local
                blog.error(
                    "billing.completion_response_unreadable",
                    status_code=exc.status_code,
                    error=exc.message,
                    idempotency_key=str(key),
                )
                record = None
            except TransportError as exc:
                self._on_transport_error(visit_id, key, exc, blog)
                raise

            self._pending_keys.pop(visit_id, None)
            with self._lock:
                self._completed.add(visit_id)

        receipt = self._build_receipt(visit_id, doctor_id, completion, breakdown, key, record)
        if not receipt.total_matches_backend:
            blog.warning(
                "billing.total_mismatch",
                local_total=str(receipt.total),
                backend_total=str(receipt.backend_total),
            )

        VISIT_COMPLETION_TOTAL.labels(outcome="success").inc()
        VISIT_BILLED_AMOUNT.labels(payment_type=str(receipt.payment_type)).inc(float(receipt.total))
        blog.info(
            "billing.visit_completed",
            total=str(receipt.total),
            discount_amount=str(receipt.discount_amount),
            services=len(receipt.lines),
            idempotency_key=str(key),
        )
        self._emit(
            VisitCompletedEvent(
                visit_id=visit_id,
                doctor_id=doctor_id,
                total=receipt.total,
                discount_amount=receipt.discount_amount,
                payment_type=str(receipt.payment_type),
                idempotency_key=key,
            )
        )
        return receipt

    # ╭──────────────────────────────────────────────╮
    # │ Rascunho                                     │
    # ╰──────────────────────────────────────────────╯
    def save_draft(self, visit_id: str, doctor_id: str, form: VisitCompletionForm) -> None:
        """
        Persiste o estado parcial. Diagnóstico e serviços podem estar vazios,
        mas quantidade e permissão de desconto continuam valendo.
        """
        completion = form.to_completion()
        blog = log.bind(visit_id=visit_id, doctor_id=doctor_id)

        with self._submission(visit_id, blog, VISIT_DRAFT_TOTAL):
            self._validate_quantities(completion)
            self._validate_discount(completion.discount)
            token = self._authorize_discount(doctor_id, completion.discount, blog)
            self._visits.save_draft(visit_id, completion, discount_token=token)

        VISIT_DRAFT_TOTAL.labels(outcome="saved").inc()
        blog.info("billing.draft_saved", services=len(completion.line_items))
        self._emit(
            VisitDraftSavedEvent(
                visit_id=visit_id,
                doctor_id=doctor_id,
                services_count=len(completion.line_items),
            )
        )

    def is_completed(self, visit_id: str) -> bool:
        with self._lock:
            return visit_id in self._completed

    # ──────────────────────────── helpers ────────────────────────────
    @contextmanager
    def _submission(self, visit_id: str, blog, outcomes: Counter) -> Iterator[None]:
        with self._lock:
            if visit_id in self._completed:
                outcomes.labels(outcome="already_completed").inc()
                blog.warning("billing.visit_already_completed")
                raise VisitAlreadyCompleted()
            if visit_id in self._in_flight:
                outcomes.labels(outcome="in_progress").inc()
                blog.warning("billing.submission_in_progress")
                raise SubmissionInProgress()
            self._in_flight.add(visit_id)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(visit_id)

    def _on_transport_error(
        self, visit_id: str, key: uuid.UUID, exc: TransportError, blog
    ) -> None:
        # sem status HTTP não se sabe se o backend recebeu: mesma chave na próxima tentativa
        if exc.is_network_error:
            self._pending_keys[visit_id] = key
        else:
            self._pending_keys.pop(visit_id, None)
        VISIT_COMPLETION_TOTAL.labels(outcome="transport_error").inc()
        blog.warning(
            "billing.submission_failed",
            status_code=exc.status_code,
            code=exc.code,
            error=exc.message,
            idempotency_key=str(key),
        )

    def _validate_completion(self, completion: VisitCompletion) -> None:
        if not completion.diagnosis.strip():
            raise EmptyDiagnosis()
        if not completion.line_items:
            raise NoServicesSelected()
        self._validate_quantities(completion)
        self._validate_discount(completion.discount)

    @staticmethod
    def _validate_quantities(completion: VisitCompletion) -> None:
        for item in completion.line_items:
            if item.quantity < 1:
                raise InvalidQuantity(
                    f"Quantity for service {item.service_id} must be at least 1"
                )

    @staticmethod
    def _validate_discount(discount: DiscountSpec) -> None:
        if not discount.is_none and discount.value < ZERO:
            raise InvalidDiscount()

    @staticmethod
    def _ensure_known_services(completion: VisitCompletion, catalog: ServiceCatalog) -> None:
        for item in completion.line_items:
            catalog.get(item.service_id)

    def _authorize_discount(self, doctor_id: str, discount: DiscountSpec, blog) -> str | None:
        """
        Consulta o backend a cada envio com desconto. Retorna o token da
        permissão para ser revalidado pelo backend na conclusão.
        """
        if discount.is_none:
            return None
        capability = self._permissions.get_capability(doctor_id)
        if not capability.can_discount or capability.is_expired:
            blog.warning(
                "billing.discount_denied",
                discount_type=str(discount.type),
                expired=capability.is_expired,
            )
            raise DiscountNotPermitted()
        return capability.token

    def _build_receipt(
        self,
        visit_id: str,
        doctor_id: str,
        completion: VisitCompletion,
        breakdown: BillingBreakdown,
        key: uuid.UUID,
        record,
    ) -> Receipt:
        lines = tuple(
            ReceiptLine(
                service_id=ln.service_id,
                service_name=ln.service_name,
                unit_price=ln.unit_price,
                quantity=ln.quantity,
                line_total=ln.line_total,
            )
            for ln in breakdown.lines
        )
        return Receipt(
            visit_id=visit_id,
            doctor_id=doctor_id,
            lines=lines,
            subtotal=breakdown.subtotal,
            discount=completion.discount,
            discount_amount=breakdown.discount_amount,
            total=breakdown.total,
            payment_type=completion.payment_type,
            idempotency_key=key,
            completed_at=(record.completed_at if record else None) or datetime.now(UTC),
            backend_total=record.total if record else None,
            doctor_share=record.doctor_share if record else None,
            doctor_earning=record.doctor_earning if record else None,
        )

    def _emit(self, event) -> None:
        if self._dispatcher is not None:
            self._dispatcher.dispatch(event)
