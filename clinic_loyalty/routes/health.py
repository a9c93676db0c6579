from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from clinic_loyalty.services.ledger.ledger_audit import audit_snapshot
from clinic_loyalty.services.ledger_store import LedgerStore, get_store


router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health_root():
    return {"ok": True}


@router.get("/ledger")
def health_ledger(store: LedgerStore = Depends(get_store)):
    report = audit_snapshot(store.snapshot(), store.policy)
    return JSONResponse(content=report, status_code=200 if report["ok"] else 503)
