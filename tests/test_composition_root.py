from decimal import Decimal
from types import SimpleNamespace
from unittest import TestCase
from unittest.mock import patch

from clinic_billing.adapters.config import composition_root
from clinic_billing.bootstrap import bootstrap
from clinic_billing.core.application.services.session_roles import (
    SessionRole,
    SessionUser,
    open_session,
)
from clinic_billing.core.domain.entities.visit_entity import DiscountSpec
from clinic_billing.core.domain.events.exceptions import TransportError, VisitAlreadyCompleted
from tests.helpers.http_responses import error_body, make_response

BASE = "http://clinic.test/api/v1/"

TEST_SETTINGS = SimpleNamespace(
    LOG_LEVEL="WARNING",
    JSON_LOGS=True,
    CLINIC_API_BASE=BASE,
    CLINIC_API_TOKEN="tok",
    CLINIC_API_TIMEOUT=1.0,
    CLINIC_API_RETRIES=0,
    CURRENCY_QUANTUM=Decimal("0.01"),
)


class CompositionRootTests(TestCase):
    def setUp(self):
        composition_root.reset_container()
        self.addCleanup(composition_root.reset_container)
        self.container = composition_root.setup_di_container_from_settings(TEST_SETTINGS)
        patcher = patch.object(self.container.clinic_client().session, "request")
        self.request = patcher.start()
        self.addCleanup(patcher.stop)

    def test_container_is_a_singleton(self):
        again = composition_root.setup_di_container_from_settings(TEST_SETTINGS)
        self.assertIs(again, self.container)

    def test_bootstrap_configures_logging_and_reuses_container(self):
        with patch("clinic_billing.bootstrap.configure_logging") as configure:
            self.assertIs(bootstrap(TEST_SETTINGS), self.container)
        configure.assert_called_once_with(level="WARNING", json_logs=True)

    def test_client_configured_from_settings(self):
        client = self.container.clinic_client()
        self.assertEqual(client.base_url, BASE)
        self.assertEqual(client.session.headers["Authorization"], "Bearer tok")

    def test_doctor_completes_visit_over_http(self):
        services = make_response(200, {"services": [
            {"id": "A", "name": "Consulta", "price": 100, "duration": 30, "is_active": True},
            {"id": "B", "name": "Limpeza", "price": 50, "duration": 30, "is_active": True},
        ]})
        capability = make_response(200, {"doctor_id": "doc-1", "can_discount": True, "token": "cap-1"})
        completed = make_response(200, {"visit": {
            "id": "v1", "doctor_id": "doc-1", "date": "2024-05-10", "status": "completed",
            "total": 225.0, "discount_amount": 25.0, "doctor_share": 40, "doctor_earning": 90.0,
        }})
        self.request.side_effect = [services, capability, completed]

        facade = self.container.facade()
        doctor = open_session(SessionUser(id="doc-1", role=SessionRole.DOCTOR, clinic_id="c1"), facade)
        form = doctor.new_form()
        form.diagnosis = "Cárie"
        form.items.add("A")
        form.items.add("A")
        form.items.add("B")
        form.discount = DiscountSpec.percentage(10)

        receipt = doctor.complete_visit("v1", form)

        self.assertEqual(receipt.total, Decimal("225.00"))
        self.assertTrue(receipt.total_matches_backend)
        self.assertEqual(receipt.doctor_earning, Decimal("90.0"))
        method, url = self.request.call_args.args[:2]
        self.assertEqual((method, url), ("POST", BASE + "visits/v1/complete"))
        kwargs = self.request.call_args.kwargs
        self.assertEqual(kwargs["headers"]["Idempotency-Key"], str(receipt.idempotency_key))
        self.assertEqual(kwargs["json"]["discount_token"], "cap-1")

    def test_backend_rejection_surfaces_message(self):
        self.request.return_value = make_response(
            409, error_body("VISIT_COMPLETED", "Visit already completed")
        )
        facade = self.container.facade()
        boss = open_session(SessionUser(id="b1", role=SessionRole.BOSS, clinic_id="c1"), facade)
        with self.assertRaises(TransportError) as ctx:
            boss.list_services()
        self.assertEqual(ctx.exception.message, "Visit already completed")

    def test_unreadable_completion_body_is_not_resubmitted(self):
        services = make_response(200, {"services": [
            {"id": "A", "name": "Consulta", "price": 100, "duration": 30, "is_active": True},
        ]})
        self.request.side_effect = [services, make_response(200, text="OK")]

        facade = self.container.facade()
        doctor = open_session(SessionUser(id="doc-1", role=SessionRole.DOCTOR, clinic_id="c1"), facade)
        form = doctor.new_form()
        form.diagnosis = "Cárie"
        form.items.add("A")

        receipt = doctor.complete_visit("v1", form)
        self.assertEqual(receipt.total, Decimal("100.00"))
        self.assertIsNone(receipt.backend_total)

        with self.assertRaises(VisitAlreadyCompleted):
            doctor.complete_visit("v1", form)
        posts = [c for c in self.request.call_args_list if c.args[0] == "POST"]
        self.assertEqual(len(posts), 1)

    def test_boss_monthly_report_over_http(self):
        self.request.return_value = make_response(200, {
            "year": 2024, "month": 5, "patients_count": 7, "visits_count": 2,
            "total_revenue": 500, "total_discount": 0,
            "doctor_earnings": [{"doctor_id": "d1", "revenue": 500, "earning": 200, "visit_count": 2}],
            "total_doctor_earnings": 200, "total_expenses": 100,
            "expenses_by_category": {"rent": 100}, "total_salaries": 50,
        })
        facade = self.container.facade()
        boss = open_session(SessionUser(id="b1", role=SessionRole.BOSS, clinic_id="c1"), facade)

        report = boss.monthly_report(2024, 5)

        self.assertEqual(self.request.call_args.args[:2], ("GET", BASE + "reports/monthly"))
        self.assertEqual(report.net_profit, Decimal("150"))
        self.assertEqual(report.doctor_earnings[0].visits_count, 2)
