from fastapi.responses import JSONResponse

from clinic_loyalty.services.ledger.models import OperationResult

NOT_FOUND_MESSAGES = {
    "User not found",
    "Family head not found",
    "Wallet not found",
    "Head user not found",
    "Member user not found",
}


def ok(data=None, meta=None, message=None, status: int = 200):
    content = {
        "ok": True,
        "data": data,
        "meta": meta or {},
    }
    if message is not None:
        content["message"] = message
    return JSONResponse(status_code=status, content=content)


def error(message: str, code: str = "error", status: int = 400):
    return JSONResponse(
        status_code=status,
        content={
            "ok": False,
            "error": code,
            "message": message,
        },
    )


def from_result(result: OperationResult, status: int = 200):
    if result.success:
        return ok(result.to_dict(), message=result.message, status=status)
    if result.message in NOT_FOUND_MESSAGES:
        return error(result.message, code="not_found", status=404)
    return error(result.message, code="rejected", status=400)
