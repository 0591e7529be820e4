import os

import structlog

from clinic_billing.core.application.commands.xray_commands import (
    DeleteXrayImageCommand,
    UploadXrayImageCommand,
)
from clinic_billing.core.application.cqrs import CommandHandler
from clinic_billing.core.domain.entities.visit_entity import XrayImageRef
from clinic_billing.core.domain.events.events import XrayImageDeletedEvent, XrayImageUploadedEvent
from clinic_billing.core.domain.events.exceptions import BillingValidationError
from clinic_billing.core.domain.repositories.xray_image_repository import XrayImageRepository
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

log = structlog.get_logger(__name__)

MAX_XRAY_SIZE = 10 * 1024 * 1024
ALLOWED_XRAY_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp", ".gif"})


class UploadXrayImageHandler(CommandHandler[UploadXrayImageCommand]):
    def __init__(self, repo: XrayImageRepository, dispatcher: EventDispatcher):
        self.repo = repo
        self.dispatcher = dispatcher

    def handle(self, command: UploadXrayImageCommand) -> XrayImageRef:
        # mesmas regras do backend, checadas antes de subir o arquivo
        ext = os.path.splitext(command.filename)[1].lower()
        if ext not in ALLOWED_XRAY_EXTENSIONS:
            raise BillingValidationError("Invalid image format. Allowed: jpg, jpeg, png, webp, gif")
        if not command.content:
            raise BillingValidationError("No image file provided")
        if len(command.content) > MAX_XRAY_SIZE:
            raise BillingValidationError("Image file too large (max 10MB)")

        ref = self.repo.upload(command.filename, command.content, command.content_type)
        log.info("xray.uploaded", url=ref.url, size=ref.size)
        self.dispatcher.dispatch(XrayImageUploadedEvent(url=ref.url, size=ref.size))
        return ref

class DeleteXrayImageHandler(CommandHandler[DeleteXrayImageCommand]):
    def __init__(self, repo: XrayImageRepository):
        self.repo = repo

    def handle(self, command: DeleteXrayImageCommand) -> XrayImageDeletedEvent:
        self.repo.delete(command.url)
        log.info("xray.deleted", url=command.url)
        return XrayImageDeletedEvent(url=command.url)
