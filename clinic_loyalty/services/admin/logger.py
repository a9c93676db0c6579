import logging
import time
from typing import Any, Dict, Optional

from fastapi import Request, Response

log = logging.getLogger("clinic_loyalty.admin")

MASK = "***masked***"

SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "x-api-key",
    "x-clinic-token",
}


def _mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    return {k: (MASK if k.lower() in SENSITIVE_HEADERS else v) for k, v in headers.items()}


def _patient_ref(request: Request) -> Optional[str]:
    # /ledger/patients/{user_id}/...
    parts = request.url.path.strip("/").split("/")
    if len(parts) >= 3 and parts[:2] == ["ledger", "patients"]:
        return parts[2]
    return None


def log_request_response(request: Request, response: Response, start_time: float) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "method": request.method,
        "path": request.url.path,
        "patient": _patient_ref(request),
        "status_code": response.status_code,
        "duration_ms": int((time.time() - start_time) * 1000),
        "client": request.client.host if request.client else None,
        "headers": _mask_headers(dict(request.headers)),
    }

    if response.status_code >= 500:
        log.error(entry)
    else:
        log.info(entry)
    return entry
