"""
Tier Engine (Canonical)
======================

Purpose:
- Deterministic tier computation based ONLY on lifetime spend.
- No side effects beyond the explicit `apply` call, no storage, no HTTP.
- Produces explanation payloads suitable for staff dashboards and audits.

Tier is a pure function of lifetime spend, and lifetime spend never
decreases, so tiers never go down.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from .loyalty_policy import LoyaltyPolicy, D, _q2
from .models import Tier, User

log = logging.getLogger("clinic_loyalty.tiers")


@dataclass(frozen=True)
class TierStatus:
    """
    Snapshot of a member's tier position.
    """
    current_tier: Tier
    lifetime_spend: Decimal
    reward_rate: Decimal
    next_tier: Optional[Tier]
    next_threshold: Optional[Decimal]
    amount_to_next_tier: Optional[Decimal]
    is_top_tier: bool

    def progress_percent(self) -> Decimal:
        if self.is_top_tier or not self.next_threshold:
            return D("100.00")
        pct = self.lifetime_spend / self.next_threshold * D("100")
        return _q2(min(D("100"), max(D("0"), pct)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_tier": self.current_tier.value,
            "lifetime_spend": str(_q2(self.lifetime_spend)),
            "reward_rate": str(self.reward_rate),
            "next_tier": None if self.next_tier is None else self.next_tier.value,
            "next_threshold": None
            if self.next_threshold is None
            else str(_q2(self.next_threshold)),
            "amount_to_next_tier": None
            if self.amount_to_next_tier is None
            else str(_q2(self.amount_to_next_tier)),
            "progress_percent": str(self.progress_percent()),
            "is_top_tier": self.is_top_tier,
        }


@dataclass(frozen=True)
class TierChange:
    user_id: str
    previous: Tier
    current: Tier

    @property
    def changed(self) -> bool:
        return self.previous != self.current


class TierEngine:
    """
    Canonical tier computation engine.
    """

    def __init__(self, policy: LoyaltyPolicy) -> None:
        self.policy = policy

    # -----------------------------
    # Core evaluation
    # -----------------------------
    def evaluate(self, lifetime_spend: Decimal) -> TierStatus:
        """
        Compute tier status for a given lifetime spend amount.
        """
        spend = self._normalize_spend(lifetime_spend)
        current = self.policy.tier_for_lifetime_spend(spend)
        nxt = self.policy.next_tier(current)

        remaining = None
        if nxt is not None:
            remaining = max(D("0"), nxt.threshold - spend)

        return TierStatus(
            current_tier=current,
            lifetime_spend=spend,
            reward_rate=self.policy.reward_rate(current),
            next_tier=None if nxt is None else nxt.tier,
            next_threshold=None if nxt is None else nxt.threshold,
            amount_to_next_tier=remaining,
            is_top_tier=nxt is None,
        )

    def apply(self, user: User) -> TierChange:
        """
        Recompute `user.current_tier` from its lifetime spend.

        Assigns only when the tier actually changes; a change is where a
        tier notification would be raised.
        """
        previous = user.current_tier
        computed = self.policy.tier_for_lifetime_spend(user.lifetime_spend)
        if computed != previous:
            user.current_tier = computed
            log.info(
                "tier changed user=%s %s -> %s (lifetime_spend=%s)",
                user.id, previous.value, computed.value, _q2(user.lifetime_spend),
            )
        return TierChange(user_id=user.id, previous=previous, current=computed)

    # -----------------------------
    # Explanation helpers
    # -----------------------------
    def explain_status(self, lifetime_spend: Decimal) -> Dict[str, Any]:
        """
        Plain-language explanation payload for staff UIs.
        """
        status = self.evaluate(lifetime_spend)
        rate_pct = (status.reward_rate * D("100")).normalize()

        if status.is_top_tier:
            message = (
                f"You are in the highest tier ({status.current_tier.value}) "
                f"and earn {rate_pct:f}% back on treatments."
            )
        else:
            message = (
                f"You are currently in the {status.current_tier.value} tier. "
                f"Spend {_q2(status.amount_to_next_tier)} more to reach "
                f"{status.next_tier.value}."
            )

        return {
            "tier_status": status.to_dict(),
            "message": message,
            "rule": "Tiers are determined only by the household head's lifetime spend.",
        }

    # -----------------------------
    # Utilities
    # -----------------------------
    @staticmethod
    def _normalize_spend(value: Decimal) -> Decimal:
        try:
            spend = Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            spend = D("0")
        if spend < D("0"):
            spend = D("0")
        return spend
