"""
Member View
===========

Read-only projections over a LedgerSnapshot for patient and staff screens:
household status, recent wallet activity and patient search.

Nothing here mutates the snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from .loyalty_policy import LoyaltyPolicy
from .models import (
    FamilyGroup,
    LedgerSnapshot,
    Role,
    Transaction,
    TransactionType,
    User,
    Wallet,
)
from .tier_engine import TierEngine, TierStatus


@dataclass(frozen=True)
class MemberStatus:
    user: User
    head: User
    family_group: Optional[FamilyGroup]
    family_members: List[User]
    wallet: Optional[Wallet]
    tier_status: TierStatus
    history: List[Transaction]

    @property
    def balance(self) -> int:
        return 0 if self.wallet is None else int(self.wallet.balance)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": self.user.to_dict(),
            "head": self.head.to_dict(),
            "family_group": None if self.family_group is None else self.family_group.to_dict(),
            "family_members": [m.to_dict() for m in self.family_members],
            "wallet_id": None if self.wallet is None else self.wallet.id,
            "balance": self.balance,
            "tier_status": self.tier_status.to_dict(),
            "history": [t.to_dict() for t in self.history],
        }


@dataclass(frozen=True)
class DailyActivity:
    day: date
    earned: int
    redeemed: int

    def to_dict(self) -> Dict[str, Any]:
        return {"day": self.day.isoformat(), "earned": self.earned, "redeemed": self.redeemed}


class MemberView:
    def __init__(self, snapshot: LedgerSnapshot, policy: Optional[LoyaltyPolicy] = None) -> None:
        self.snapshot = snapshot
        self.policy = policy or LoyaltyPolicy()
        self.tiers = TierEngine(self.policy)

    def _user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.snapshot.users if u.id == user_id), None)

    def _group(self, group_id: Optional[str]) -> Optional[FamilyGroup]:
        if not group_id:
            return None
        return next((g for g in self.snapshot.family_groups if g.id == group_id), None)

    def _household(self, user: User):
        group = self._group(user.family_group_id)
        head_id = group.head_user_id if group else user.id
        head = self._user(head_id) or user
        wallet = next((w for w in self.snapshot.wallets if w.user_id == head_id), None)
        return group, head, wallet

    def status(self, user_id: str) -> Optional[MemberStatus]:
        """
        Household status as the patient sees it; None for an unknown id.
        """
        user = self._user(user_id)
        if user is None:
            return None
        group, head, wallet = self._household(user)

        if group is not None:
            members = [u for u in self.snapshot.users if u.family_group_id == group.id]
        else:
            members = [user]

        history: List[Transaction] = []
        if wallet is not None:
            history = sorted(
                (t for t in self.snapshot.transactions if t.wallet_id == wallet.id),
                key=lambda t: t.date,
                reverse=True,
            )

        return MemberStatus(
            user=user,
            head=head,
            family_group=group,
            family_members=members,
            wallet=wallet,
            tier_status=self.tiers.evaluate(head.lifetime_spend),
            history=history,
        )

    def daily_activity(
        self,
        user_id: str,
        days: int = 7,
        today: Optional[date] = None,
    ) -> List[DailyActivity]:
        """Earned and redeemed points per day on the household wallet, oldest first."""
        user = self._user(user_id)
        if user is None or days <= 0:
            return []
        _, _, wallet = self._household(user)
        if wallet is None:
            return []

        today = today or date.today()
        rows = [t for t in self.snapshot.transactions if t.wallet_id == wallet.id]
        out: List[DailyActivity] = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            day_rows = [t for t in rows if t.date.date() == day]
            out.append(
                DailyActivity(
                    day=day,
                    earned=sum(t.points_earned for t in day_rows if t.type == TransactionType.EARN),
                    redeemed=sum(
                        abs(t.points_earned) for t in day_rows if t.type == TransactionType.REDEEM
                    ),
                )
            )
        return out

    def search_patients(self, query: str = "") -> List[User]:
        q = (query or "").strip().lower()
        return [
            u
            for u in self.snapshot.users
            if u.role == Role.PATIENT and (q in u.name.lower() or q in u.mobile)
        ]

    def recent_transactions(self, limit: int = 10) -> List[Transaction]:
        return list(self.snapshot.transactions[: max(0, limit)])
