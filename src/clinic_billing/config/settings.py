from decimal import Decimal

from decouple import config

# -------------------------------
# Logging
# -------------------------------
LOG_LEVEL = config('LOG_LEVEL', default='INFO')
JSON_LOGS = config('JSON_LOGS', default=False, cast=bool)

# -------------------------------
# Clinic CRM API
# -------------------------------
CLINIC_API_BASE    = config('CLINIC_API_BASE', default='http://localhost:8080/api/v1/')
CLINIC_API_TOKEN   = config('CLINIC_API_TOKEN', default='')
CLINIC_API_TIMEOUT = config('CLINIC_API_TIMEOUT', default=10.0, cast=float)
CLINIC_API_RETRIES = config('CLINIC_API_RETRIES', default=3, cast=int)

# -------------------------------
# Faturamento
# -------------------------------
CURRENCY_DECIMAL_PLACES = config('CURRENCY_DECIMAL_PLACES', default=2, cast=int)
CURRENCY_QUANTUM = Decimal(1).scaleb(-CURRENCY_DECIMAL_PLACES)
