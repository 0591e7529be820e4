class BillingError(Exception):
    """Classe base para todas as exceções do faturamento de consultas."""

    code = "BILLING_ERROR"
    default_message = "Billing error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


# ───────────────────────────────────────────────
# Validação local (antes de qualquer chamada à API)
# ───────────────────────────────────────────────
class BillingValidationError(BillingError):
    """
    Erro de validação local. O formulário não é enviado e o usuário
    pode corrigir e reenviar imediatamente.
    """
    code = "VALIDATION_ERROR"


class EmptyDiagnosis(BillingValidationError):
    code = "DIAGNOSIS_REQUIRED"
    default_message = "Diagnosis is required to complete the visit"


class NoServicesSelected(BillingValidationError):
    code = "NO_SERVICES_SELECTED"
    default_message = "At least one service must be selected to complete the visit"


class InvalidQuantity(BillingValidationError):
    code = "INVALID_QUANTITY"
    default_message = "Service quantity must be at least 1"


class InvalidDiscount(BillingValidationError):
    code = "INVALID_DISCOUNT"
    default_message = "Discount value cannot be negative"


class UnknownServiceError(BillingValidationError):
    code = "UNKNOWN_SERVICE"

    def __init__(self, service_id: str) -> None:
        self.service_id = service_id
        super().__init__(f"Service {service_id} not found in catalog")


# ───────────────────────────────────────────────
# Permissões
# ───────────────────────────────────────────────
class BillingPermissionError(BillingError):
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


class DiscountNotPermitted(BillingPermissionError):
    code = "DISCOUNT_NOT_PERMITTED"
    default_message = "This doctor is not allowed to apply discounts"


class RoleNotAllowed(BillingPermissionError):
    code = "ROLE_NOT_ALLOWED"


# ───────────────────────────────────────────────
# Estado da consulta
# ───────────────────────────────────────────────
class VisitStateError(BillingError):
    code = "VISIT_STATE_ERROR"


class VisitAlreadyCompleted(VisitStateError):
    code = "VISIT_ALREADY_COMPLETED"
    default_message = "Visit is already completed"


class SubmissionInProgress(VisitStateError):
    code = "SUBMISSION_IN_PROGRESS"
    default_message = "A submission for this visit is already in progress"


# ───────────────────────────────────────────────
# Transporte / backend
# ───────────────────────────────────────────────
class TransportError(BillingError):
    """
    Falha de rede ou resposta não-2xx do backend.
    A mensagem do backend é repassada sem alterações ao usuário.
    """
    code = "TRANSPORT_ERROR"
    default_message = "An error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        code: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.request_id = request_id
        if code:
            self.code = code

    @property
    def is_network_error(self) -> bool:
        return self.status_code is None


class ResponseContractError(TransportError):
    """
    O backend respondeu 2xx, mas o corpo não é JSON ou não segue o contrato.
    A requisição foi aceita; só a resposta é ilegível.
    """
    code = "UNREADABLE_RESPONSE"
    default_message = "Unexpected backend response"

    @property
    def accepted(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300
