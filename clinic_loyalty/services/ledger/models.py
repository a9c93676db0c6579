"""
Ledger domain model
===================

Plain dataclasses for the four collections the engine owns: users, wallets,
transactions and family groups. Relationships are lookup keys (ids), never
object references, so a snapshot can be copied and serialized freely.

Amounts of money are Decimal, points are int, timestamps are aware UTC
datetimes.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    PATIENT = "PATIENT"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class Tier(str, Enum):
    MEMBER = "MEMBER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"


class TransactionCategory(str, Enum):
    GENERAL = "GENERAL"
    COSMETIC = "COSMETIC"
    HYGIENE = "HYGIENE"


class TransactionType(str, Enum):
    EARN = "EARN"
    REDEEM = "REDEEM"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _money(x: Decimal) -> str:
    return str(Decimal(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _iso(ts: datetime) -> str:
    return ts.isoformat()


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass
class User:
    id: str
    mobile: str
    name: str
    role: Role = Role.PATIENT
    family_group_id: Optional[str] = None
    # only the household head's value drives tier
    lifetime_spend: Decimal = Decimal("0")
    current_tier: Tier = Tier.MEMBER
    joined_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "mobile": self.mobile,
            "name": self.name,
            "role": self.role.value,
            "family_group_id": self.family_group_id,
            "lifetime_spend": _money(self.lifetime_spend),
            "current_tier": self.current_tier.value,
            "joined_at": _iso(self.joined_at),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "User":
        return User(
            id=str(data["id"]),
            mobile=str(data["mobile"]),
            name=str(data["name"]),
            role=Role(data.get("role", Role.PATIENT.value)),
            family_group_id=data.get("family_group_id"),
            lifetime_spend=Decimal(str(data.get("lifetime_spend", "0"))),
            current_tier=Tier(data.get("current_tier", Tier.MEMBER.value)),
            joined_at=_parse_ts(data["joined_at"]) if data.get("joined_at") else utc_now(),
        )


@dataclass
class Wallet:
    """
    Points wallet. `user_id` is the owner; once a member joins a family the
    head's wallet is used instead and the member's wallet stays dormant.
    """
    id: str
    user_id: str
    balance: int = 0
    last_transaction_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "balance": int(self.balance),
            "last_transaction_at": _iso(self.last_transaction_at),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Wallet":
        return Wallet(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            balance=int(data.get("balance", 0)),
            last_transaction_at=(
                _parse_ts(data["last_transaction_at"])
                if data.get("last_transaction_at")
                else utc_now()
            ),
        )


@dataclass
class Transaction:
    """
    Ledger row. Immutable after creation except `wallet_id`, which a family
    merge rewrites once to move history onto the head's wallet.

    points_earned:
        positive => points credited
        negative => points redeemed
    """
    id: str
    wallet_id: str
    amount_paid: Decimal
    points_earned: int
    category: TransactionCategory
    type: TransactionType
    date: datetime
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "wallet_id": self.wallet_id,
            "amount_paid": _money(self.amount_paid),
            "points_earned": int(self.points_earned),
            "category": self.category.value,
            "type": self.type.value,
            "date": _iso(self.date),
            "description": self.description,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Transaction":
        return Transaction(
            id=str(data["id"]),
            wallet_id=str(data["wallet_id"]),
            amount_paid=Decimal(str(data.get("amount_paid", "0"))),
            points_earned=int(data.get("points_earned", 0)),
            category=TransactionCategory(data["category"]),
            type=TransactionType(data["type"]),
            date=_parse_ts(data["date"]),
            description=str(data.get("description", "")),
        )


@dataclass
class FamilyGroup:
    id: str
    head_user_id: str
    family_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "head_user_id": self.head_user_id,
            "family_name": self.family_name,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "FamilyGroup":
        return FamilyGroup(
            id=str(data["id"]),
            head_user_id=str(data["head_user_id"]),
            family_name=str(data.get("family_name", "")),
        )


@dataclass
class LedgerSnapshot:
    """
    The four collections at a point in time.

    Transactions are ordered most-recent-first.
    """
    users: List[User] = field(default_factory=list)
    wallets: List[Wallet] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    family_groups: List[FamilyGroup] = field(default_factory=list)

    def copy(self) -> "LedgerSnapshot":
        return copy.deepcopy(self)

    def total_points(self) -> int:
        return sum(int(w.balance) for w in self.wallets)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [u.to_dict() for u in self.users],
            "wallets": [w.to_dict() for w in self.wallets],
            "transactions": [t.to_dict() for t in self.transactions],
            "family_groups": [g.to_dict() for g in self.family_groups],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "LedgerSnapshot":
        data = data or {}
        return LedgerSnapshot(
            users=[User.from_dict(x) for x in data.get("users") or []],
            wallets=[Wallet.from_dict(x) for x in data.get("wallets") or []],
            transactions=[Transaction.from_dict(x) for x in data.get("transactions") or []],
            family_groups=[FamilyGroup.from_dict(x) for x in data.get("family_groups") or []],
        )


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of an engine call. Failures carry no snapshot and imply that
    nothing was mutated.
    """
    success: bool
    message: str
    user: Optional[User] = None
    transaction: Optional[Transaction] = None
    snapshot: Optional[LedgerSnapshot] = None

    @staticmethod
    def fail(message: str) -> "OperationResult":
        return OperationResult(success=False, message=message)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.user is not None:
            out["user"] = self.user.to_dict()
        if self.transaction is not None:
            out["transaction"] = self.transaction.to_dict()
        if self.snapshot is not None:
            out["snapshot"] = self.snapshot.to_dict()
        return out


@dataclass(frozen=True)
class DashboardStats:
    total_liability: int
    total_revenue: Decimal
    upgrading_soon: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_liability": int(self.total_liability),
            "total_revenue": _money(self.total_revenue),
            "upgrading_soon": int(self.upgrading_soon),
        }
