from __future__ import annotations

import time
from typing import Any, TypeVar
from urllib.parse import urljoin

import requests
import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from clinic_billing.adapters.observability.metrics import CLINIC_API_LATENCY
from clinic_billing.core.application.dtos.clinic_api_dtos import ApiErrorBodyDTO
from clinic_billing.core.domain.events.exceptions import ResponseContractError, TransportError

T = TypeVar("T", bound=BaseModel)


class BaseAPIClient:
    """
    Utilitário HTTP com:
      • retry exponencial (somente métodos idempotentes)
      • timeout configurável
      • desembrulho de envelopes ({"visit": {...}}, {"services": [...]})
      • parse + validação Pydantic
      • respostas não-2xx e falhas de rede viram TransportError
    """

    def __init__(
        self,
        *,
        base_url: str,
        default_headers: dict[str, str] | None = None,
        timeout: float = 5.0,
        retries: int = 3,
    ) -> None:
        self.log = structlog.get_logger(__name__).bind(component=type(self).__name__)
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout

        self.log.debug("Configurando cliente", base_url=self.base_url, timeout=timeout)

        # sessão + retry -----------------------------------------------------------------
        self.session = requests.Session()
        if default_headers:
            self.session.headers.update(default_headers)

        # POST nunca é repetido automaticamente: a conclusão não é idempotente
        retry_cfg = Retry(
            total=retries,
            backoff_factor=0.3,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=frozenset({"GET", "PUT", "DELETE"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_cfg)
        for scheme in ("https://", "http://"):
            self.session.mount(scheme, adapter)

    # ---------------------------------------------------------------------- utils -----
    @staticmethod
    def _sanitize_payload(payload: Any, envelope: str | None = None) -> Any:
        """
        Remove o envelope da resposta quando presente.
        Respostas sem envelope são devolvidas como vieram.
        """
        if envelope and isinstance(payload, dict) and envelope in payload:
            return payload[envelope]
        return payload

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    @staticmethod
    def _error_from_response(resp: requests.Response) -> TransportError:
        try:
            body = ApiErrorBodyDTO.model_validate(resp.json())
        except (ValueError, ValidationError):
            message = resp.text.strip() or resp.reason or f"HTTP {resp.status_code}"
            return TransportError(message, status_code=resp.status_code)
        return TransportError(
            body.error.message,
            status_code=resp.status_code,
            code=body.error.code,
            request_id=body.error.request_id,
        )

    # ---------------------------------------------------------------------- HTTP ------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        files: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        response_model: Any = None,
        envelope: str | None = None,
        endpoint: str | None = None,
    ) -> Any:
        """
        Executa a request e devolve o JSON (ou None para corpo vazio),
        validado contra `response_model` quando informado.
        `endpoint` é o rótulo usado na métrica de latência (sem ids).
        Um 2xx ilegível vira ResponseContractError, que carrega o status.
        """
        url = self._url(path)
        method = method.upper()
        log = self.log.bind(method=method, url=url)
        log.debug("Enviando requisição", params=params)

        start = time.perf_counter()
        status = "error"
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
            status = str(resp.status_code)
        except requests.RequestException as exc:
            log.error("Falha de rede", error=str(exc))
            raise TransportError(str(exc) or type(exc).__name__) from exc
        finally:
            CLINIC_API_LATENCY.labels(
                method=method, endpoint=endpoint or path, status=status
            ).observe(time.perf_counter() - start)

        log.debug("Resposta recebida", status_code=resp.status_code)
        if not resp.ok:
            err = self._error_from_response(resp)
            log.warning(
                "Resposta de erro",
                status_code=resp.status_code,
                code=err.code,
                error=err.message,
                request_id=err.request_id,
            )
            raise err

        if not resp.content:
            payload = None
        else:
            try:
                payload = resp.json()
            except ValueError as exc:
                log.error("JSON inválido na resposta", status_code=resp.status_code)
                raise ResponseContractError(
                    "Invalid JSON in backend response", status_code=resp.status_code
                ) from exc

        if response_model is None:
            return payload
        return self._validated(payload, response_model, envelope, status_code=resp.status_code)

    def _validated(
        self,
        payload: Any,
        response_model: Any,
        envelope: str | None,
        *,
        status_code: int,
    ) -> Any:
        data = self._sanitize_payload(payload, envelope)
        try:
            return TypeAdapter(response_model).validate_python(data)
        except ValidationError as exc:
            self.log.error("Resposta fora do contrato", model=str(response_model), error=str(exc))
            raise ResponseContractError(
                "Unexpected backend response", status_code=status_code
            ) from exc

    def _get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        response_model: Any,
        envelope: str | None = None,
        endpoint: str | None = None,
    ) -> Any:
        return self._request(
            "GET",
            path,
            params=params,
            response_model=response_model,
            envelope=envelope,
            endpoint=endpoint,
        )

    def _post(
        self,
        path: str,
        *,
        json_body: Any = None,
        files: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        response_model: Any = None,
        envelope: str | None = None,
        endpoint: str | None = None,
    ) -> Any:
        return self._request(
            "POST",
            path,
            json_body=json_body,
            files=files,
            headers=headers,
            response_model=response_model,
            envelope=envelope,
            endpoint=endpoint,
        )

    def _put(
        self,
        path: str,
        *,
        json_body: Any = None,
        response_model: Any = None,
        envelope: str | None = None,
        endpoint: str | None = None,
    ) -> Any:
        return self._request(
            "PUT",
            path,
            json_body=json_body,
            response_model=response_model,
            envelope=envelope,
            endpoint=endpoint,
        )

    def _delete(self, path: str, *, endpoint: str | None = None) -> None:
        self._request("DELETE", path, endpoint=endpoint)
