from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from clinic_loyalty.services.ledger.member_view import MemberView
from clinic_loyalty.services.ledger.models import TransactionCategory, TransactionType
from clinic_loyalty.services.ledger_store import LedgerStore, get_store
from clinic_loyalty.settings import settings
from clinic_loyalty.utils.envelope import error, from_result, ok

router = APIRouter(prefix="/ledger", tags=["ledger"])


class PatientIn(BaseModel):
    name: str = Field(..., min_length=1, description="Patient full name")
    mobile: str = Field(..., min_length=1, description="Mobile number, unique per patient")


class TransactionIn(BaseModel):
    patient_id: str
    amount: Decimal = Field(..., gt=0, description="Amount paid for EARN, points for REDEEM")
    category: TransactionCategory
    type: TransactionType


class FamilyLinkIn(BaseModel):
    head_user_id: str
    member_mobile: str = Field(..., min_length=1)


@router.get("/snapshot")
def ledger_snapshot(store: LedgerStore = Depends(get_store)):
    return ok(store.snapshot().to_dict())


@router.get("/dashboard")
def ledger_dashboard(store: LedgerStore = Depends(get_store)):
    engine = store.engine()
    stats = engine.get_dashboard_stats()
    recent = MemberView(engine.get_snapshot(), store.policy).recent_transactions()
    return ok(stats.to_dict(), meta={"recent_transactions": [t.to_dict() for t in recent]})


@router.post("/patients")
def register_patient(body: PatientIn, store: LedgerStore = Depends(get_store)):
    result = store.run(lambda engine: engine.register_patient(body.name, body.mobile))
    return from_result(result, status=201)


@router.get("/patients")
def search_patients(q: str = "", store: LedgerStore = Depends(get_store)):
    users = MemberView(store.snapshot(), store.policy).search_patients(q)
    return ok([u.to_dict() for u in users], meta={"count": len(users)})


@router.get("/patients/{user_id}/status")
def patient_status(user_id: str, store: LedgerStore = Depends(get_store)):
    status = MemberView(store.snapshot(), store.policy).status(user_id)
    if status is None:
        return error("User not found", code="not_found", status=404)
    return ok(status.to_dict())


@router.get("/patients/{user_id}/activity")
def patient_activity(
    user_id: str,
    days: int = Query(7, ge=1, le=90),
    store: LedgerStore = Depends(get_store),
):
    view = MemberView(store.snapshot(), store.policy)
    if view.status(user_id) is None:
        return error("User not found", code="not_found", status=404)
    return ok([d.to_dict() for d in view.daily_activity(user_id, days=days)])


@router.post("/transactions")
def process_transaction(body: TransactionIn, store: LedgerStore = Depends(get_store)):
    result = store.run(
        lambda engine: engine.process_transaction(
            body.patient_id, body.amount, body.category, body.type
        )
    )
    return from_result(result)


@router.post("/family/link")
def link_family_member(body: FamilyLinkIn, store: LedgerStore = Depends(get_store)):
    if not settings.FEATURE_FAMILY_LINKING:
        raise HTTPException(status_code=403, detail="Family linking is disabled")
    result = store.run(
        lambda engine: engine.link_family_member(body.head_user_id, body.member_mobile)
    )
    return from_result(result)
