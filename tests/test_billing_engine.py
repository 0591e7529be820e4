"""
Testes do BillingEngine com repositórios em memória.

Cobrem validação local (sem chamada ao backend), a checagem de permissão
de desconto no backend, o recibo, a idempotência e o estado terminal.
"""
import threading
import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest import TestCase
from unittest.mock import patch

from clinic_billing.adapters.observability.metrics import registry
from clinic_billing.core.application.services.billing_engine import BillingEngine
from clinic_billing.core.domain.entities.visit_entity import (
    DiscountSpec,
    LineItem,
    PaymentType,
    XrayImageRef,
)
from clinic_billing.core.domain.entities.visit_form import VisitCompletionForm
from clinic_billing.core.domain.events.events import (
    ServiceCatalogChangedEvent,
    VisitCompletedEvent,
    VisitDraftSavedEvent,
)
from clinic_billing.core.domain.events.exceptions import (
    DiscountNotPermitted,
    EmptyDiagnosis,
    InvalidDiscount,
    InvalidQuantity,
    NoServicesSelected,
    ResponseContractError,
    SubmissionInProgress,
    TransportError,
    UnknownServiceError,
    VisitAlreadyCompleted,
)
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher
from tests.helpers.fakes import (
    FakePermissionRepo,
    FakeServiceCatalogRepo,
    FakeVisitRepo,
    make_service,
)


def _outcome(name: str) -> float:
    return registry.get_sample_value("clinic_visit_completion_total", {"outcome": name}) or 0.0


def _draft_outcome(name: str) -> float:
    return registry.get_sample_value("clinic_visit_draft_total", {"outcome": name}) or 0.0


class BillingEngineTests(TestCase):
    def setUp(self):
        self.catalog_repo = FakeServiceCatalogRepo()
        self.visit_repo = FakeVisitRepo()
        self.permission_repo = FakePermissionRepo({"doc-ok": True})
        self.dispatcher = EventDispatcher()
        self.events = []
        for evt_type in (VisitCompletedEvent, VisitDraftSavedEvent):
            self.dispatcher.subscribe(evt_type, self.events.append)
        self.engine = BillingEngine(
            self.catalog_repo,
            self.visit_repo,
            self.permission_repo,
            self.dispatcher,
        )

    def _form(self, *, diagnosis="Cárie", discount=None, items=(("A", 2), ("B", 1))):
        form = VisitCompletionForm(diagnosis=diagnosis)
        for sid, qty in items:
            for _ in range(qty):
                form.items.add(sid)
        if discount is not None:
            form.discount = discount
        return form

    # ───────────────────────── validação local ─────────────────────────
    def test_empty_services_fail_without_backend_call(self):
        before = _outcome("validation_error")
        with self.assertRaises(NoServicesSelected):
            self.engine.complete_visit("v1", "doc-ok", self._form(items=()))
        self.assertEqual(self.visit_repo.calls, 0)
        self.assertEqual(self.catalog_repo.list_calls, 0)
        self.assertEqual(self.permission_repo.lookups, [])
        self.assertEqual(_outcome("validation_error"), before + 1)

    def test_empty_diagnosis(self):
        with self.assertRaises(EmptyDiagnosis):
            self.engine.complete_visit("v1", "doc-ok", self._form(diagnosis="   "))
        self.assertEqual(self.visit_repo.calls, 0)

    def test_invalid_quantity(self):
        form = self._form()
        with patch.object(form.items, "snapshot", return_value=(LineItem("A", 0),)):
            with self.assertRaises(InvalidQuantity):
                self.engine.complete_visit("v1", "doc-ok", form)
        self.assertEqual(self.visit_repo.calls, 0)

    def test_negative_discount_rejected(self):
        with self.assertRaises(InvalidDiscount):
            self.engine.complete_visit("v1", "doc-ok", self._form(discount=DiscountSpec.fixed(-5)))
        self.assertEqual(self.visit_repo.calls, 0)

    def test_non_finite_discount_is_a_typed_error(self):
        for raw in ("NaN", "sNaN", "Infinity", "-Infinity", "abc", float("nan")):
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidDiscount):
                    DiscountSpec.fixed(raw)
                with self.assertRaises(InvalidDiscount):
                    DiscountSpec.percentage(raw)
        self.assertEqual(self.visit_repo.calls, 0)

    def test_unknown_service_rejected_before_submission(self):
        form = self._form(items=(("A", 1), ("GONE", 1)))
        with self.assertRaises(UnknownServiceError):
            self.engine.complete_visit("v1", "doc-ok", form)
        self.assertEqual(self.visit_repo.calls, 0)

    def test_failed_validation_can_be_retried_immediately(self):
        form = self._form(diagnosis="")
        with self.assertRaises(EmptyDiagnosis):
            self.engine.complete_visit("v1", "doc-ok", form)
        form.diagnosis = "Gengivite"
        receipt = self.engine.complete_visit("v1", "doc-ok", form)
        self.assertEqual(receipt.total, Decimal("25000.00"))

    # ───────────────────────── permissão de desconto ─────────────────────────
    def test_discount_without_permission_is_rejected_not_dropped(self):
        before = _outcome("permission_denied")
        with self.assertRaises(DiscountNotPermitted):
            self.engine.complete_visit(
                "v1", "doc-no", self._form(discount=DiscountSpec.percentage(10))
            )
        self.assertEqual(self.visit_repo.calls, 0)
        self.assertEqual(self.permission_repo.lookups, ["doc-no"])
        self.assertEqual(_outcome("permission_denied"), before + 1)

    def test_fixed_discount_without_permission_is_rejected(self):
        with self.assertRaises(DiscountNotPermitted):
            self.engine.complete_visit("v1", "doc-no", self._form(discount=DiscountSpec.fixed(1)))

    def test_expired_capability_is_rejected(self):
        self.permission_repo.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        with self.assertRaises(DiscountNotPermitted):
            self.engine.complete_visit(
                "v1", "doc-ok", self._form(discount=DiscountSpec.percentage(10))
            )

    def test_no_discount_skips_permission_lookup(self):
        self.engine.complete_visit("v1", "doc-no", self._form())
        self.assertEqual(self.permission_repo.lookups, [])
        self.assertIsNone(self.visit_repo.completed[0]["discount_token"])

    def test_permission_is_checked_on_every_submission(self):
        spec = DiscountSpec.percentage(10)
        self.engine.complete_visit("v1", "doc-ok", self._form(discount=spec))
        self.permission_repo.allowed["doc-ok"] = False
        with self.assertRaises(DiscountNotPermitted):
            self.engine.complete_visit("v2", "doc-ok", self._form(discount=spec))
        self.assertEqual(self.permission_repo.lookups, ["doc-ok", "doc-ok"])

    def test_capability_token_forwarded(self):
        self.engine.complete_visit("v1", "doc-ok", self._form(discount=DiscountSpec.percentage(10)))
        self.assertEqual(self.visit_repo.completed[0]["discount_token"], "cap-doc-ok")

    # ───────────────────────── conclusão ─────────────────────────
    def test_receipt_for_percentage_scenario(self):
        self.visit_repo.backend_total = Decimal("22500")
        self.visit_repo.doctor_share = Decimal("40")
        form = self._form(discount=DiscountSpec.percentage(10))
        form.payment_type = PaymentType.CARD

        receipt = self.engine.complete_visit("v1", "doc-ok", form)

        self.assertEqual(receipt.subtotal, Decimal("25000.00"))
        self.assertEqual(receipt.discount_amount, Decimal("2500.00"))
        self.assertEqual(receipt.total, Decimal("22500.00"))
        self.assertEqual([ln.service_name for ln in receipt.lines], ["Service A", "Service B"])
        self.assertEqual(receipt.payment_type, PaymentType.CARD)
        self.assertTrue(receipt.total_matches_backend)
        self.assertEqual(receipt.doctor_earning, Decimal("9000"))
        self.assertIsNotNone(receipt.completed_at)

    def test_fixed_discount_above_subtotal_gives_zero_total(self):
        receipt = self.engine.complete_visit(
            "v1", "doc-ok", self._form(discount=DiscountSpec.fixed(30000))
        )
        self.assertEqual(receipt.total, Decimal("0.00"))
        self.assertEqual(receipt.discount_amount, Decimal("25000.00"))

    def test_single_submission_with_idempotency_key(self):
        receipt = self.engine.complete_visit("v1", "doc-ok", self._form())
        self.assertEqual(len(self.visit_repo.completed), 1)
        sent = self.visit_repo.completed[0]
        self.assertIsInstance(sent["idempotency_key"], uuid.UUID)
        self.assertEqual(receipt.idempotency_key, sent["idempotency_key"])

    def test_submitted_completion_carries_form_state(self):
        form = self._form()
        form.toggle_tooth("11")
        form.toggle_tooth("21")
        form.add_plan_step("Limpeza")
        form.attach_xray(XrayImageRef(url="/uploads/xray/a.png"))
        form.comment = "Retorno em 30 dias"

        self.engine.complete_visit("v1", "doc-ok", form)

        completion = self.visit_repo.completed[0]["completion"]
        self.assertEqual(completion.affected_teeth, frozenset({"11", "21"}))
        self.assertEqual(completion.plan_steps[0].description, "Limpeza")
        self.assertEqual(completion.xray_image_refs, ("/uploads/xray/a.png",))
        self.assertEqual(completion.line_items, (LineItem("A", 2), LineItem("B", 1)))

    def test_backend_total_mismatch_is_logged(self):
        self.visit_repo.backend_total = Decimal("1")
        with patch("clinic_billing.core.application.services.billing_engine.log") as log:
            log.bind.return_value = log
            receipt = self.engine.complete_visit("v1", "doc-ok", self._form())
        self.assertFalse(receipt.total_matches_backend)
        events = [c.args[0] for c in log.warning.call_args_list]
        self.assertIn("billing.total_mismatch", events)

    def test_completed_event_dispatched(self):
        receipt = self.engine.complete_visit("v1", "doc-ok", self._form())
        self.assertEqual(len(self.events), 1)
        evt = self.events[0]
        self.assertIsInstance(evt, VisitCompletedEvent)
        self.assertEqual(evt.total, receipt.total)
        self.assertEqual(evt.idempotency_key, receipt.idempotency_key)

    def test_inactive_service_still_completes(self):
        self.catalog_repo.services["OLD"] = make_service("OLD", 300, active=False)
        receipt = self.engine.complete_visit("v1", "doc-ok", self._form(items=(("OLD", 1),)))
        self.assertEqual(receipt.total, Decimal("300.00"))

    # ───────────────────────── estado da consulta ─────────────────────────
    def test_completed_visit_is_terminal(self):
        self.engine.complete_visit("v1", "doc-ok", self._form())
        self.assertTrue(self.engine.is_completed("v1"))
        with self.assertRaises(VisitAlreadyCompleted):
            self.engine.complete_visit("v1", "doc-ok", self._form())
        with self.assertRaises(VisitAlreadyCompleted):
            self.engine.save_draft("v1", "doc-ok", self._form())
        self.assertEqual(len(self.visit_repo.completed), 1)

    def test_second_submission_while_in_flight_is_rejected(self):
        errors = []
        entered = threading.Event()
        release = threading.Event()

        def slow_backend(visit_id):
            entered.set()
            release.wait(timeout=5)

        self.visit_repo.on_complete = slow_backend
        worker = threading.Thread(
            target=self.engine.complete_visit, args=("v1", "doc-ok", self._form())
        )
        worker.start()
        self.assertTrue(entered.wait(timeout=5))
        try:
            self.engine.complete_visit("v1", "doc-ok", self._form())
        except SubmissionInProgress as exc:
            errors.append(exc)
        finally:
            release.set()
            worker.join(timeout=5)

        self.assertEqual(len(errors), 1)
        self.assertEqual(len(self.visit_repo.completed), 1)

    def test_transport_error_releases_visit_for_retry(self):
        self.visit_repo.fail_with = TransportError("Visit not found", status_code=404, code="NOT_FOUND")
        with self.assertRaises(TransportError) as ctx:
            self.engine.complete_visit("v1", "doc-ok", self._form())
        self.assertEqual(ctx.exception.message, "Visit not found")
        self.assertFalse(self.engine.is_completed("v1"))

        self.visit_repo.fail_with = None
        self.engine.complete_visit("v1", "doc-ok", self._form())
        keys = [c["idempotency_key"] for c in self.visit_repo.completed]
        self.assertNotEqual(keys[0], keys[1])

    def test_network_error_retry_reuses_idempotency_key(self):
        self.visit_repo.fail_with = TransportError("Connection reset")
        with self.assertRaises(TransportError):
            self.engine.complete_visit("v1", "doc-ok", self._form())
        self.visit_repo.fail_with = None
        receipt = self.engine.complete_visit("v1", "doc-ok", self._form())
        keys = [c["idempotency_key"] for c in self.visit_repo.completed]
        self.assertEqual(keys[0], keys[1])
        self.assertEqual(receipt.idempotency_key, keys[0])

    def test_accepted_completion_with_unreadable_body_is_final(self):
        self.visit_repo.fail_with = ResponseContractError(
            "Invalid JSON in backend response", status_code=200
        )
        receipt = self.engine.complete_visit("v1", "doc-ok", self._form())

        self.assertEqual(receipt.total, Decimal("25000.00"))
        self.assertIsNone(receipt.backend_total)
        self.assertIsNone(receipt.doctor_earning)
        self.assertTrue(self.engine.is_completed("v1"))
        self.assertIsInstance(self.events[-1], VisitCompletedEvent)

        with self.assertRaises(VisitAlreadyCompleted):
            self.engine.complete_visit("v1", "doc-ok", self._form())
        self.assertEqual(len(self.visit_repo.completed), 1)

    def test_local_total_sent_for_cross_check(self):
        self.engine.complete_visit(
            "v1", "doc-ok", self._form(discount=DiscountSpec.percentage(10))
        )
        self.assertEqual(self.visit_repo.completed[0]["expected_total"], Decimal("22500.00"))

    # ───────────────────────── rascunho ─────────────────────────
    def test_empty_draft_succeeds(self):
        self.engine.save_draft("v1", "doc-ok", VisitCompletionForm())
        self.assertEqual(len(self.visit_repo.drafts), 1)
        self.assertIsInstance(self.events[0], VisitDraftSavedEvent)
        self.assertEqual(self.events[0].services_count, 0)

    def test_draft_still_enforces_discount_permission(self):
        form = VisitCompletionForm(discount=DiscountSpec.percentage(5))
        with self.assertRaises(DiscountNotPermitted):
            self.engine.save_draft("v1", "doc-no", form)
        self.assertEqual(self.visit_repo.drafts, [])

    def test_rejected_draft_counted_as_draft_not_completion(self):
        self.engine.complete_visit("v1", "doc-ok", self._form())
        completion_before = _outcome("already_completed")
        draft_before = _draft_outcome("already_completed")
        with self.assertRaises(VisitAlreadyCompleted):
            self.engine.save_draft("v1", "doc-ok", self._form())
        self.assertEqual(_outcome("already_completed"), completion_before)
        self.assertEqual(_draft_outcome("already_completed"), draft_before + 1)

    def test_drafts_can_be_saved_repeatedly_before_completion(self):
        form = self._form(diagnosis="")
        self.engine.save_draft("v1", "doc-ok", form)
        form.diagnosis = "Pulpite"
        self.engine.save_draft("v1", "doc-ok", form)
        self.engine.complete_visit("v1", "doc-ok", form)
        self.assertEqual(len(self.visit_repo.drafts), 2)
        self.assertTrue(self.engine.is_completed("v1"))

    # ───────────────────────── preview ─────────────────────────
    def test_preview_forces_none_when_map_denies(self):
        form = self._form(discount=DiscountSpec.percentage(10))
        bd = self.engine.preview(form, doctor_id="doc-no", permissions={})
        self.assertEqual(bd.total, Decimal("25000.00"))
        bd = self.engine.preview(form, doctor_id="doc-ok", permissions={"doc-ok": True})
        self.assertEqual(bd.total, Decimal("22500.00"))
        self.assertEqual(self.visit_repo.calls, 0)

    def test_catalog_is_cached_until_invalidated(self):
        form = self._form()
        self.engine.preview(form)
        self.engine.preview(form)
        self.assertEqual(self.catalog_repo.list_calls, 1)
        self.engine.invalidate_catalog(ServiceCatalogChangedEvent(service_id="A", action="updated"))
        self.engine.preview(form)
        self.assertEqual(self.catalog_repo.list_calls, 2)
