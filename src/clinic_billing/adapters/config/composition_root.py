"""
Composition-root do *clinic_billing*.

• Recebe o módulo de `settings` (ou qualquer objeto com os mesmos atributos).
• Devolve um singleton `container` com todos os providers + handlers
  registrados nos buses.
"""
from dependency_injector import containers, providers

container = None  # type: ignore


# ────────────────────────────────────────────────────────────────────
def setup_di_container_from_settings(settings):                      # noqa: PLR0915
    """
    Lazy-factory do DI container.  Pode ser chamada quantas vezes
    for necessário – sempre retorna a mesma instância.
    """
    global container                                                 # noqa: PLW0603
    if container is not None:
        import structlog

        structlog.get_logger(__name__).debug(
            "ClinicBilling DI container já instanciado."
        )
        return container

    from clinic_billing.adapters.api_clients.clinic_api_client import ClinicAPIClient
    from clinic_billing.adapters.repositories.clinic_report_repo_impl import ClinicReportRepoImpl
    from clinic_billing.adapters.repositories.discount_permission_repo_impl import (
        DiscountPermissionRepoImpl,
    )
    from clinic_billing.adapters.repositories.service_catalog_repo_impl import (
        ServiceCatalogRepoImpl,
    )
    from clinic_billing.adapters.repositories.visit_repo_impl import VisitRepoImpl
    from clinic_billing.adapters.repositories.xray_image_repo_impl import XrayImageRepoImpl
    from clinic_billing.core.application.commands.permission_commands import (
        SetDiscountPermissionCommand,
    )
    from clinic_billing.core.application.commands.service_commands import (
        CreateServiceCommand,
        DeleteServiceCommand,
        UpdateServiceCommand,
    )
    from clinic_billing.core.application.commands.visit_commands import (
        CompleteVisitCommand,
        SaveVisitDraftCommand,
    )
    from clinic_billing.core.application.commands.xray_commands import (
        DeleteXrayImageCommand,
        UploadXrayImageCommand,
    )
    from clinic_billing.core.application.cqrs import CommandBusImpl, QueryBusImpl
    from clinic_billing.core.application.handlers.permission_handlers import (
        GetDiscountCapabilityHandler,
        SetDiscountPermissionHandler,
    )
    from clinic_billing.core.application.handlers.report_handlers import (
        GetDailyReportHandler,
        GetMonthlyReportHandler,
        GetRevenueReportHandler,
    )
    from clinic_billing.core.application.handlers.service_handlers import (
        CreateServiceHandler,
        DeleteServiceHandler,
        ListServicesHandler,
        UpdateServiceHandler,
    )
    from clinic_billing.core.application.handlers.visit_handlers import (
        CompleteVisitHandler,
        PreviewVisitTotalHandler,
        SaveVisitDraftHandler,
    )
    from clinic_billing.core.application.handlers.xray_handlers import (
        DeleteXrayImageHandler,
        UploadXrayImageHandler,
    )
    from clinic_billing.core.application.queries.billing_queries import (
        GetDiscountCapabilityQuery,
        PreviewVisitTotalQuery,
    )
    from clinic_billing.core.application.queries.report_queries import (
        GetDailyReportQuery,
        GetMonthlyReportQuery,
        GetRevenueReportQuery,
    )
    from clinic_billing.core.application.queries.service_queries import ListServicesQuery
    from clinic_billing.core.application.services.billing_engine import BillingEngine
    from clinic_billing.core.application.services.revenue_report_service import (
        RevenueReportService,
    )
    from clinic_billing.core.application.services.session_roles import (
        ClinicBillingFacade,
    )
    from clinic_billing.core.domain.events.events import ServiceCatalogChangedEvent
    from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

    # ─── CONTAINER ─────────────────────────────────────────────────
    class Container(containers.DeclarativeContainer):
        wiring_config = containers.WiringConfiguration(packages=[])

        # --- configuração -----------------------------------------
        config = providers.Configuration()

        # --- cross-cutting ----------------------------------------
        dispatcher  = providers.Singleton(EventDispatcher)
        command_bus = providers.Singleton(CommandBusImpl, dispatcher=dispatcher)
        query_bus   = providers.Singleton(QueryBusImpl)

        # --- conexões externas ------------------------------------
        clinic_client = providers.Singleton(
            ClinicAPIClient,
            base_url=config.api.base_url,
            token=config.api.token,
            timeout=config.api.timeout,
            retries=config.api.retries,
        )

        # --- repositórios -----------------------------------------
        service_catalog_repo = providers.Singleton(ServiceCatalogRepoImpl, client=clinic_client)
        visit_repo           = providers.Singleton(VisitRepoImpl, client=clinic_client)
        xray_image_repo      = providers.Singleton(XrayImageRepoImpl, client=clinic_client)
        permission_repo      = providers.Singleton(DiscountPermissionRepoImpl, client=clinic_client)
        report_repo          = providers.Singleton(ClinicReportRepoImpl, client=clinic_client)

        # --- serviços --------------------------------------------
        billing_engine = providers.Singleton(
            BillingEngine,
            catalog_repo=service_catalog_repo,
            visit_repo=visit_repo,
            permission_repo=permission_repo,
            dispatcher=dispatcher,
            quantum=config.billing.quantum,
        )
        revenue_report_service = providers.Singleton(
            RevenueReportService,
            visit_repo=visit_repo,
            quantum=config.billing.quantum,
        )
        facade = providers.Singleton(
            ClinicBillingFacade,
            command_bus=command_bus,
            query_bus=query_bus,
        )

        # --- handlers ---------------------------------------------
        complete_visit_handler   = providers.Factory(CompleteVisitHandler, engine=billing_engine)
        save_draft_handler       = providers.Factory(SaveVisitDraftHandler, engine=billing_engine)
        preview_total_handler    = providers.Factory(PreviewVisitTotalHandler, engine=billing_engine)
        list_services_handler    = providers.Factory(ListServicesHandler, repo=service_catalog_repo)
        create_service_handler   = providers.Factory(
            CreateServiceHandler, repo=service_catalog_repo, dispatcher=dispatcher
        )
        update_service_handler   = providers.Factory(
            UpdateServiceHandler, repo=service_catalog_repo, dispatcher=dispatcher
        )
        delete_service_handler   = providers.Factory(DeleteServiceHandler, repo=service_catalog_repo)
        upload_xray_handler      = providers.Factory(
            UploadXrayImageHandler, repo=xray_image_repo, dispatcher=dispatcher
        )
        delete_xray_handler      = providers.Factory(DeleteXrayImageHandler, repo=xray_image_repo)
        set_permission_handler   = providers.Factory(
            SetDiscountPermissionHandler, repo=permission_repo, dispatcher=dispatcher
        )
        get_capability_handler   = providers.Factory(GetDiscountCapabilityHandler, repo=permission_repo)
        revenue_report_handler   = providers.Factory(
            GetRevenueReportHandler, service=revenue_report_service
        )
        daily_report_handler     = providers.Factory(GetDailyReportHandler, repo=report_repo)
        monthly_report_handler   = providers.Factory(GetMonthlyReportHandler, repo=report_repo)

        # ----------------------------------------------------------
        def init(self) -> None:
            """Registra handlers em CommandBus / QueryBus – executa 1×."""
            bus = self.command_bus()
            bus.register(CompleteVisitCommand,          self.complete_visit_handler())
            bus.register(SaveVisitDraftCommand,         self.save_draft_handler())
            bus.register(CreateServiceCommand,          self.create_service_handler())
            bus.register(UpdateServiceCommand,          self.update_service_handler())
            bus.register(DeleteServiceCommand,          self.delete_service_handler())
            bus.register(UploadXrayImageCommand,        self.upload_xray_handler())
            bus.register(DeleteXrayImageCommand,        self.delete_xray_handler())
            bus.register(SetDiscountPermissionCommand,  self.set_permission_handler())

            qry = self.query_bus()
            qry.register(ListServicesQuery,          self.list_services_handler())
            qry.register(PreviewVisitTotalQuery,     self.preview_total_handler())
            qry.register(GetDiscountCapabilityQuery, self.get_capability_handler())
            qry.register(GetRevenueReportQuery,      self.revenue_report_handler())
            qry.register(GetDailyReportQuery,        self.daily_report_handler())
            qry.register(GetMonthlyReportQuery,      self.monthly_report_handler())

            # catálogo em cache no engine é descartado a cada alteração
            self.dispatcher().subscribe(
                ServiceCatalogChangedEvent, self.billing_engine().invalidate_catalog
            )

    # ─── INSTANTIAÇÃO + CONFIG ─────────────────────────────────────
    container = Container()
    container.config.api.base_url.from_value(settings.CLINIC_API_BASE)
    container.config.api.token.from_value(settings.CLINIC_API_TOKEN)
    container.config.api.timeout.from_value(settings.CLINIC_API_TIMEOUT)
    container.config.api.retries.from_value(settings.CLINIC_API_RETRIES)
    container.config.billing.quantum.from_value(settings.CURRENCY_QUANTUM)

    # registra os handlers
    Container.init(container)                                             # type: ignore[attr-defined]
    return container


def reset_container() -> None:
    """Descarta o singleton (usado entre testes)."""
    global container                                                 # noqa: PLW0603
    container = None
