from clinic_billing.core.application.commands.visit_commands import (
    CompleteVisitCommand,
    SaveVisitDraftCommand,
)
from clinic_billing.core.application.cqrs import CommandHandler, QueryHandler
from clinic_billing.core.application.queries.billing_queries import PreviewVisitTotalQuery
from clinic_billing.core.application.services.billing_engine import BillingEngine
from clinic_billing.core.domain.entities.receipt_entity import Receipt
from clinic_billing.core.domain.services.discount_policy import BillingBreakdown


class CompleteVisitHandler(CommandHandler[CompleteVisitCommand]):
    def __init__(self, engine: BillingEngine):
        self.engine = engine

    def handle(self, command: CompleteVisitCommand) -> Receipt:
        return self.engine.complete_visit(command.visit_id, command.doctor_id, command.form)

class SaveVisitDraftHandler(CommandHandler[SaveVisitDraftCommand]):
    def __init__(self, engine: BillingEngine):
        self.engine = engine

    def handle(self, command: SaveVisitDraftCommand) -> None:
        self.engine.save_draft(command.visit_id, command.doctor_id, command.form)

class PreviewVisitTotalHandler(QueryHandler[PreviewVisitTotalQuery, BillingBreakdown]):
    def __init__(self, engine: BillingEngine):
        self.engine = engine

    def handle(self, query: PreviewVisitTotalQuery) -> BillingBreakdown:
        return self.engine.preview(
            query.form, doctor_id=query.doctor_id, permissions=query.permissions
        )
