from __future__ import annotations

from dataclasses import dataclass

from clinic_billing.core.application.cqrs import CommandDTO


@dataclass(frozen=True)
class UploadXrayImageCommand(CommandDTO):
    filename: str
    content: bytes
    content_type: str = "image/jpeg"

@dataclass(frozen=True)
class DeleteXrayImageCommand(CommandDTO):
    url: str
