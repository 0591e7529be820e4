import structlog

from clinic_billing.core.application.commands.permission_commands import (
    SetDiscountPermissionCommand,
)
from clinic_billing.core.application.cqrs import CommandHandler, QueryHandler
from clinic_billing.core.application.queries.billing_queries import GetDiscountCapabilityQuery
from clinic_billing.core.domain.entities.permission_entity import DiscountCapability
from clinic_billing.core.domain.events.events import DiscountPermissionChangedEvent
from clinic_billing.core.domain.repositories.discount_permission_repository import (
    DiscountPermissionRepository,
)
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

log = structlog.get_logger(__name__)


class SetDiscountPermissionHandler(CommandHandler[SetDiscountPermissionCommand]):
    def __init__(self, repo: DiscountPermissionRepository, dispatcher: EventDispatcher):
        self.repo = repo
        self.dispatcher = dispatcher

    def handle(self, command: SetDiscountPermissionCommand) -> DiscountCapability:
        capability = self.repo.set_permission(command.doctor_id, command.can_discount)
        log.info(
            "permission.discount_changed",
            doctor_id=command.doctor_id,
            can_discount=capability.can_discount,
        )
        self.dispatcher.dispatch(
            DiscountPermissionChangedEvent(
                doctor_id=command.doctor_id, can_discount=capability.can_discount
            )
        )
        return capability

class GetDiscountCapabilityHandler(QueryHandler[GetDiscountCapabilityQuery, DiscountCapability]):
    def __init__(self, repo: DiscountPermissionRepository):
        self.repo = repo

    def handle(self, query: GetDiscountCapabilityQuery) -> DiscountCapability:
        return self.repo.get_capability(query.doctor_id)
