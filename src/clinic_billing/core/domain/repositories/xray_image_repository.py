from abc import ABC, abstractmethod

from clinic_billing.core.domain.entities.visit_entity import XrayImageRef


class XrayImageRepository(ABC):
    @abstractmethod
    def upload(self, filename: str, content: bytes, content_type: str) -> XrayImageRef:
        ...

    @abstractmethod
    def delete(self, url: str) -> None:
        ...
