from clinic_billing.adapters.api_clients.clinic_api_client import ClinicAPIClient
from clinic_billing.core.domain.entities.visit_entity import XrayImageRef
from clinic_billing.core.domain.repositories.xray_image_repository import XrayImageRepository


class XrayImageRepoImpl(XrayImageRepository):
    def __init__(self, client: ClinicAPIClient):
        self.client = client

    def upload(self, filename: str, content: bytes, content_type: str) -> XrayImageRef:
        dto = self.client.upload_xray_image(filename, content, content_type)
        return XrayImageRef(
            url=dto.url,
            filename=dto.filename or filename,
            size=dto.size or len(content),
        )

    def delete(self, url: str) -> None:
        self.client.delete_xray_image(url)
