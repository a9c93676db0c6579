"""
Loyalty Policy (Canonical)
==========================

Single source of truth for the clinic loyalty rules.

Key requirements implemented:
- Tier progression is based ONLY on the household head's lifetime spend.
- A tier is reached when lifetime spend strictly exceeds its threshold.
- Points are a fixed percentage of the amount paid, truncated to whole points.
- Points can only be redeemed against cosmetic treatments.

Non-goals:
- No storage access (pure domain rules).
- No HTTP / FastAPI logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, List, Optional

from .models import Tier, TransactionCategory


D = Decimal

TIER_THRESHOLDS: Dict[Tier, Decimal] = {
    Tier.MEMBER: D("0"),
    Tier.GOLD: D("10000"),
    Tier.PLATINUM: D("50000"),
}

TIER_REWARDS: Dict[Tier, Decimal] = {
    Tier.MEMBER: D("0.02"),
    Tier.GOLD: D("0.05"),
    Tier.PLATINUM: D("0.08"),
}

# a member counts as "upgrading soon" within this fraction of the next threshold
UPGRADE_WINDOW = D("0.10")


def _q2(x: Decimal) -> Decimal:
    return x.quantize(D("0.01"), rounding=ROUND_HALF_UP)


def _to_decimal(v: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    if v is None or isinstance(v, bool):
        return default
    if isinstance(v, Decimal):
        return v
    try:
        return D(str(v))
    except (InvalidOperation, ValueError, TypeError):
        return default


@dataclass(frozen=True)
class TierRule:
    """
    A tier with the spend it must exceed and the reward rate it grants.
    """
    tier: Tier
    name: str
    threshold: Decimal
    reward_rate: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.tier.value,
            "name": self.name,
            "threshold": str(_q2(self.threshold)),
            "reward_rate": str(self.reward_rate),
        }


@dataclass(frozen=True)
class LoyaltyPolicy:
    """
    Top-level policy object for the clinic program.

    The tier engine and the ledger engine both read tiers from here; nothing
    else should duplicate the thresholds.
    """
    program_name: str = "Clinic Loyalty"
    currency: str = "INR"
    currency_symbol: str = "₹"

    tiers: List[TierRule] = field(default_factory=list)
    redeemable_categories: tuple = (TransactionCategory.COSMETIC,)
    upgrade_window: Decimal = UPGRADE_WINDOW

    version: str = "clinic-2024-canonical"

    def __post_init__(self) -> None:
        if not self.tiers:
            object.__setattr__(self, "tiers", self.default_tiers())
        object.__setattr__(
            self, "tiers", sorted(self.tiers, key=lambda t: t.threshold)
        )
        self._validate()

    # -----------------------------
    # Defaults
    # -----------------------------
    @staticmethod
    def default_tiers() -> List[TierRule]:
        return [
            TierRule(t, t.value.title(), TIER_THRESHOLDS[t], TIER_REWARDS[t])
            for t in (Tier.MEMBER, Tier.GOLD, Tier.PLATINUM)
        ]

    # -----------------------------
    # Validation
    # -----------------------------
    def _validate(self) -> None:
        if not self.program_name.strip():
            raise ValueError("program_name cannot be empty")
        if not self.currency.strip():
            raise ValueError("currency cannot be empty")

        seen = set()
        previous: Optional[Decimal] = None
        for t in self.tiers:
            if t.tier in seen:
                raise ValueError(f"duplicate tier: {t.tier.value}")
            seen.add(t.tier)
            if t.threshold < D("0"):
                raise ValueError("tier threshold cannot be negative")
            if previous is not None and t.threshold <= previous:
                raise ValueError("tier thresholds must be strictly increasing")
            if t.reward_rate < D("0") or t.reward_rate >= D("1"):
                raise ValueError("reward_rate must be between 0 and < 1")
            previous = t.threshold

        if self.tiers[0].threshold != D("0"):
            raise ValueError("first tier must have threshold = 0")
        if self.upgrade_window <= D("0") or self.upgrade_window >= D("1"):
            raise ValueError("upgrade_window must be between 0 and 1")

    # -----------------------------
    # Tier logic
    # -----------------------------
    def rule_for(self, tier: Tier) -> TierRule:
        for t in self.tiers:
            if t.tier == tier:
                return t
        raise KeyError(tier)

    def tier_for_lifetime_spend(self, lifetime_spend: Decimal) -> Tier:
        """
        Returns the highest tier whose threshold the spend strictly exceeds.

        The entry tier always applies, including at zero spend.
        """
        spend = _to_decimal(lifetime_spend, D("0"))
        current = self.tiers[0]
        for t in self.tiers[1:]:
            if spend > t.threshold:
                current = t
            else:
                break
        return current.tier

    def next_tier(self, tier: Tier) -> Optional[TierRule]:
        """
        Returns the rule for the tier above `tier`, or None at the top.
        """
        rules = self.tiers
        for idx, t in enumerate(rules):
            if t.tier == tier:
                return rules[idx + 1] if idx + 1 < len(rules) else None
        return None

    def amount_to_next_tier(self, tier: Tier, lifetime_spend: Decimal) -> Optional[Decimal]:
        """
        Distance from `lifetime_spend` to the next tier's threshold.
        Returns None if already at top tier.
        """
        nxt = self.next_tier(tier)
        if nxt is None:
            return None
        return nxt.threshold - _to_decimal(lifetime_spend, D("0"))

    def is_upgrading_soon(self, tier: Tier, lifetime_spend: Decimal) -> bool:
        remaining = self.amount_to_next_tier(tier, lifetime_spend)
        if remaining is None:
            return False
        nxt = self.next_tier(tier)
        return D("0") < remaining <= nxt.threshold * self.upgrade_window

    # -----------------------------
    # Points logic
    # -----------------------------
    def reward_rate(self, tier: Tier) -> Decimal:
        return self.rule_for(tier).reward_rate

    def points_for_spend(self, amount: Decimal, tier: Tier) -> int:
        """
        Points earned for `amount` at `tier`, truncated toward zero.
        """
        spend = _to_decimal(amount, D("0"))
        if spend <= D("0"):
            return 0
        raw = spend * self.reward_rate(tier)
        return int(raw.to_integral_value(rounding=ROUND_FLOOR))

    def can_redeem_for(self, category: TransactionCategory) -> bool:
        return category in self.redeemable_categories

    # -----------------------------
    # Serialization
    # -----------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "program_name": self.program_name,
            "currency": self.currency,
            "currency_symbol": self.currency_symbol,
            "tiers": [t.to_dict() for t in self.tiers],
            "redeemable_categories": [c.value for c in self.redeemable_categories],
            "upgrade_window": str(self.upgrade_window),
            "version": self.version,
        }
