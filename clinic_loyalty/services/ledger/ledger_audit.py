"""
Ledger Audit Snapshot
=====================

Purpose:
- Check a LedgerSnapshot against the ledger's structural rules
- Useful for health checks, reconciliation after a merge, and tests
- No writes (caller decides what to do with a failing report)
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .loyalty_policy import LoyaltyPolicy
from .models import LedgerSnapshot


def audit_snapshot(
    snapshot: LedgerSnapshot,
    policy: Optional[LoyaltyPolicy] = None,
) -> Dict[str, Any]:
    policy = policy or LoyaltyPolicy()
    problems: List[str] = []

    wallet_ids = {w.id for w in snapshot.wallets}
    wallet_owner = {w.user_id: w for w in snapshot.wallets}
    groups = {g.id: g for g in snapshot.family_groups}

    checks = {
        "balances_non_negative": True,
        "mobiles_unique": True,
        "tiers_consistent": True,
        "transactions_reference_wallets": True,
        "groups_resolve": True,
        "member_wallets_drained": True,
    }

    for w in snapshot.wallets:
        if w.balance < 0:
            checks["balances_non_negative"] = False
            problems.append(f"wallet {w.id} has negative balance {w.balance}")

    dupes = [m for m, n in Counter(u.mobile for u in snapshot.users).items() if n > 1]
    if dupes:
        checks["mobiles_unique"] = False
        problems.extend(f"mobile {m} is used by more than one user" for m in dupes)

    heads = {g.head_user_id for g in snapshot.family_groups}
    for u in snapshot.users:
        if u.family_group_id and u.id not in heads:
            # members keep their own spend for the record; only heads are tiered
            continue
        expected = policy.tier_for_lifetime_spend(u.lifetime_spend)
        if u.current_tier != expected:
            checks["tiers_consistent"] = False
            problems.append(
                f"user {u.id} is {u.current_tier.value} but spend implies {expected.value}"
            )

    for t in snapshot.transactions:
        if t.wallet_id not in wallet_ids:
            checks["transactions_reference_wallets"] = False
            problems.append(f"transaction {t.id} references unknown wallet {t.wallet_id}")

    for u in snapshot.users:
        if not u.family_group_id:
            continue
        group = groups.get(u.family_group_id)
        if group is None:
            checks["groups_resolve"] = False
            problems.append(f"user {u.id} references unknown group {u.family_group_id}")
            continue
        if u.id == group.head_user_id:
            continue
        own = wallet_owner.get(u.id)
        head_wallet = wallet_owner.get(group.head_user_id)
        if own is None or head_wallet is None or own.id == head_wallet.id:
            continue
        if own.balance != 0 or any(t.wallet_id == own.id for t in snapshot.transactions):
            checks["member_wallets_drained"] = False
            problems.append(f"member wallet {own.id} still holds points or history")

    return {
        "ok": all(checks.values()),
        "checks": checks,
        "problems": problems,
        "total_points": snapshot.total_points(),
        "counts": {
            "users": len(snapshot.users),
            "wallets": len(snapshot.wallets),
            "transactions": len(snapshot.transactions),
            "family_groups": len(snapshot.family_groups),
        },
        "policy_version": policy.version,
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
