import json
from typing import Any

import requests


def make_response(
    status_code: int = 200,
    body: Any = None,
    *,
    text: str | None = None,
    url: str = "http://clinic.test/api/v1/",
) -> requests.Response:
    """Monta um `requests.Response` real, sem rede."""
    resp = requests.Response()
    resp.status_code = status_code
    resp.url = url
    resp.reason = "OK" if status_code < 400 else "Error"
    if body is not None:
        resp._content = json.dumps(body).encode()
        resp.headers["Content-Type"] = "application/json"
    elif text is not None:
        resp._content = text.encode()
    else:
        resp._content = b""
    return resp


def error_body(code: str, message: str, request_id: str = "req-1") -> dict[str, Any]:
    return {"error": {"code": code, "message": message, "request_id": request_id}}
