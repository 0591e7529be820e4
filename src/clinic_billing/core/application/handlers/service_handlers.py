import structlog

from clinic_billing.core.application.commands.service_commands import (
    CreateServiceCommand,
    DeleteServiceCommand,
    UpdateServiceCommand,
)
from clinic_billing.core.application.cqrs import CommandHandler, QueryHandler
from clinic_billing.core.application.dtos.clinic_api_dtos import ServicePayloadDTO
from clinic_billing.core.application.queries.service_queries import ListServicesQuery
from clinic_billing.core.domain.entities.service_entity import ServiceEntity
from clinic_billing.core.domain.events.events import ServiceCatalogChangedEvent
from clinic_billing.core.domain.repositories.service_catalog_repository import (
    ServiceCatalogRepository,
)
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

log = structlog.get_logger(__name__)


# ─── LEITURA ─────────────────────────────────────────────

class ListServicesHandler(QueryHandler[ListServicesQuery, list[ServiceEntity]]):
    def __init__(self, repo: ServiceCatalogRepository):
        self.repo = repo

    def handle(self, query: ListServicesQuery) -> list[ServiceEntity]:
        services = self.repo.list_services()
        if query.active_only:
            services = [s for s in services if s.is_active]
        return services


# ─── ESCRITA (dono da clínica) ───────────────────────────

class CreateServiceHandler(CommandHandler[CreateServiceCommand]):
    def __init__(self, repo: ServiceCatalogRepository, dispatcher: EventDispatcher):
        self.repo = repo
        self.dispatcher = dispatcher

    def handle(self, command: CreateServiceCommand) -> ServiceEntity:
        payload = ServicePayloadDTO(
            name=command.name,
            price=command.price,
            duration=command.duration,
            description=command.description,
        ).to_payload()
        service = self.repo.create_service(payload)
        log.info("service.created", service_id=service.id, name=service.name)
        self.dispatcher.dispatch(ServiceCatalogChangedEvent(service_id=service.id, action="created"))
        return service

class UpdateServiceHandler(CommandHandler[UpdateServiceCommand]):
    def __init__(self, repo: ServiceCatalogRepository, dispatcher: EventDispatcher):
        self.repo = repo
        self.dispatcher = dispatcher

    def handle(self, command: UpdateServiceCommand) -> ServiceEntity:
        payload = ServicePayloadDTO(
            name=command.name,
            price=command.price,
            duration=command.duration,
            description=command.description,
            is_active=command.is_active,
        ).to_payload()
        service = self.repo.update_service(command.service_id, payload)
        log.info("service.updated", service_id=service.id, fields=sorted(payload))
        self.dispatcher.dispatch(ServiceCatalogChangedEvent(service_id=service.id, action="updated"))
        return service

class DeleteServiceHandler(CommandHandler[DeleteServiceCommand]):
    """Retorna o evento; o CommandBusImpl o publica."""
    def __init__(self, repo: ServiceCatalogRepository):
        self.repo = repo

    def handle(self, command: DeleteServiceCommand) -> ServiceCatalogChangedEvent:
        self.repo.delete_service(command.service_id)
        log.info("service.deleted", service_id=command.service_id)
        return ServiceCatalogChangedEvent(service_id=command.service_id, action="deleted")
