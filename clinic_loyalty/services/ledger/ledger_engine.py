"""
Ledger Engine (Canonical)
=========================

Purpose:
- Validate and apply earn/redeem transactions against the household wallet.
- Keep the head user's tier in line with the household's lifetime spend.
- Merge a member's wallet, history and spend into a family head's account.

Lifecycle:
    engine = LedgerEngine.from_snapshot(snapshot)
    result = engine.process_transaction(...)
    if result.success:
        snapshot = result.snapshot

The engine copies the collections it is given, so a rejected call leaves the
caller's state untouched. It performs no I/O and no locking; callers must
serialize access (see services/ledger_store.py).
"""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, List, Optional

from .loyalty_policy import LoyaltyPolicy, D, _q2
from .models import (
    DashboardStats,
    FamilyGroup,
    LedgerSnapshot,
    OperationResult,
    Role,
    Tier,
    Transaction,
    TransactionCategory,
    TransactionType,
    User,
    Wallet,
    utc_now,
)
from .tier_engine import TierEngine

log = logging.getLogger("clinic_loyalty.ledger")

Clock = Callable[[], datetime]
IdFactory = Callable[[str], str]


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _coerce_amount(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = value if isinstance(value, Decimal) else D(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not amount.is_finite() or amount <= D("0"):
        return None
    return amount


def _coerce_enum(enum_cls, value: Any):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        return None


def _fmt_amount(amount: Decimal) -> str:
    if amount == amount.to_integral_value():
        return str(int(amount))
    return str(_q2(amount))


def family_name_for(head_name: str) -> str:
    """
    "Rohan Menon" -> "Menon's Family"; single names are used whole.
    """
    parts = head_name.split(" ")
    surname = parts[1] if len(parts) > 1 and parts[1] else head_name
    return f"{surname}'s Family"


class LedgerEngine:
    """
    Owns users, wallets, transactions and family groups for one operation.

    Entry points that mutate state:
    - register_patient
    - process_transaction
    - link_family_member
    Read-only:
    - get_snapshot
    - get_dashboard_stats
    - effective_wallet / head_user
    """

    def __init__(
        self,
        users: Iterable[User] = (),
        wallets: Iterable[Wallet] = (),
        transactions: Iterable[Transaction] = (),
        family_groups: Iterable[FamilyGroup] = (),
        *,
        policy: Optional[LoyaltyPolicy] = None,
        clock: Optional[Clock] = None,
        id_factory: Optional[IdFactory] = None,
    ) -> None:
        self.users: List[User] = copy.deepcopy(list(users))
        self.wallets: List[Wallet] = copy.deepcopy(list(wallets))
        self.transactions: List[Transaction] = copy.deepcopy(list(transactions))
        self.family_groups: List[FamilyGroup] = copy.deepcopy(list(family_groups))

        self.policy = policy or LoyaltyPolicy()
        self.tiers = TierEngine(self.policy)
        self.clock = clock or utc_now
        self.id_factory = id_factory or new_id

    @classmethod
    def from_snapshot(cls, snapshot: LedgerSnapshot, **kwargs: Any) -> "LedgerEngine":
        return cls(
            snapshot.users,
            snapshot.wallets,
            snapshot.transactions,
            snapshot.family_groups,
            **kwargs,
        )

    # -----------------------------
    # Lookups
    # -----------------------------
    def _user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def _user_by_mobile(self, mobile: str) -> Optional[User]:
        return next((u for u in self.users if u.mobile == mobile), None)

    def _group(self, group_id: Optional[str]) -> Optional[FamilyGroup]:
        if not group_id:
            return None
        return next((g for g in self.family_groups if g.id == group_id), None)

    def _wallet_owned_by(self, user_id: str) -> Optional[Wallet]:
        return next((w for w in self.wallets if w.user_id == user_id), None)

    def effective_wallet(self, user_id: str) -> Optional[Wallet]:
        """
        The wallet a user's transactions land in: the family head's wallet
        for grouped users, the user's own wallet otherwise.
        """
        user = self._user(user_id)
        if user is None:
            return None
        target_id = user.id
        group = self._group(user.family_group_id)
        if group is not None:
            target_id = group.head_user_id
        return self._wallet_owned_by(target_id)

    def head_user(self, user_id: str) -> Optional[User]:
        """
        The user whose lifetime spend drives tier for `user_id`'s household.
        """
        user = self._user(user_id)
        if user is None:
            return None
        group = self._group(user.family_group_id)
        if group is not None:
            return self._user(group.head_user_id)
        return user

    # -----------------------------
    # Registration
    # -----------------------------
    def register_patient(self, name: str, mobile: str) -> OperationResult:
        name = (name or "").strip()
        mobile = (mobile or "").strip()
        if not name or not mobile:
            return self._reject("register", "Name and mobile number are required.")
        if self._user_by_mobile(mobile) is not None:
            return self._reject(
                "register", "Patient with this mobile number already exists."
            )

        now = self.clock()
        user = User(
            id=self.id_factory("user"),
            mobile=mobile,
            name=name,
            role=Role.PATIENT,
            lifetime_spend=D("0"),
            current_tier=Tier.MEMBER,
            joined_at=now,
        )
        wallet = Wallet(
            id=self.id_factory("wallet"),
            user_id=user.id,
            balance=0,
            last_transaction_at=now,
        )
        self.users.append(user)
        self.wallets.append(wallet)

        log.info("patient registered user=%s wallet=%s", user.id, wallet.id)
        return OperationResult(
            success=True,
            message="Patient registered successfully.",
            user=copy.deepcopy(user),
            snapshot=self.get_snapshot(),
        )

    # -----------------------------
    # Transactions
    # -----------------------------
    def process_transaction(
        self,
        patient_id: str,
        amount: Any,
        category: Any,
        type: Any,
    ) -> OperationResult:
        """
        Apply an EARN or REDEEM for `patient_id` on the household wallet.

        EARN adds `amount` to the head's lifetime spend, re-tiers the head and
        credits floor(amount * rate) points at the post-upgrade rate. REDEEM
        debits `amount` points and is only allowed for redeemable categories.
        All checks run before any mutation.
        """
        user = self._user(patient_id)
        if user is None:
            return self._reject("transaction", "User not found")

        head = self.head_user(patient_id)
        if head is None:
            return self._reject("transaction", "Family head not found")

        wallet = self.effective_wallet(patient_id)
        if wallet is None:
            return self._reject("transaction", "Wallet not found")

        tx_category = _coerce_enum(TransactionCategory, category)
        if tx_category is None:
            return self._reject("transaction", f"Unknown transaction category: {category}")
        tx_type = _coerce_enum(TransactionType, type)
        if tx_type is None:
            return self._reject("transaction", f"Unknown transaction type: {type}")

        value = _coerce_amount(amount)
        if value is None:
            return self._reject("transaction", "Amount must be a positive number.")

        if tx_type == TransactionType.EARN:
            head.lifetime_spend += value
            if user.id != head.id:
                # individual record only; tier follows the head
                user.lifetime_spend += value

            self.tiers.apply(head)

            points_change = self.policy.points_for_spend(value, head.current_tier)
            wallet.balance += points_change
        else:
            if not self.policy.can_redeem_for(tx_category):
                return self._reject(
                    "transaction",
                    "Points can only be redeemed for Cosmetic treatments.",
                )
            if value != value.to_integral_value():
                return self._reject(
                    "transaction", "Redeem amount must be a whole number of points."
                )
            points = int(value)
            if wallet.balance < points:
                return self._reject("transaction", "Insufficient points balance.")

            points_change = -points
            wallet.balance -= points

        now = self.clock()
        wallet.last_transaction_at = now

        tx = Transaction(
            id=self.id_factory("tx"),
            wallet_id=wallet.id,
            amount_paid=value if tx_type == TransactionType.EARN else D("0"),
            points_earned=points_change,
            category=tx_category,
            type=tx_type,
            date=now,
            description=(
                f"{tx_category.value} - "
                f"{'Treatment' if tx_type == TransactionType.EARN else 'Redemption'}"
            ),
        )
        self.transactions.insert(0, tx)

        if tx_type == TransactionType.EARN:
            message = (
                f"Processed {self.policy.currency_symbol}{_fmt_amount(value)}. "
                f"Earned {points_change} pts."
            )
        else:
            message = f"Redeemed {abs(points_change)} pts successfully."

        log.info(
            "transaction committed tx=%s wallet=%s type=%s points=%s balance=%s",
            tx.id, wallet.id, tx_type.value, points_change, wallet.balance,
        )
        return OperationResult(
            success=True,
            message=message,
            transaction=copy.deepcopy(tx),
            snapshot=self.get_snapshot(),
        )

    # -----------------------------
    # Family linking
    # -----------------------------
    def link_family_member(self, head_user_id: str, member_mobile: str) -> OperationResult:
        """
        Join the user with `member_mobile` to `head_user_id`'s family.

        The member's wallet is drained into the head's wallet and every
        transaction on it is repointed at the head's wallet, so total points
        across all wallets are unchanged. The member's lifetime spend is
        added to the head's and the head is re-tiered.
        """
        head = self._user(head_user_id)
        member = self._user_by_mobile((member_mobile or "").strip())

        if head is None:
            return self._reject("link", "Head user not found")
        if member is None:
            return self._reject("link", "Member user not found")
        if head.id == member.id:
            return self._reject("link", "Cannot link user to themselves")
        if member.family_group_id:
            return self._reject("link", "User is already part of a family group")

        group = self._group(head.family_group_id)
        if group is None:
            group = FamilyGroup(
                id=self.id_factory("fam"),
                head_user_id=head.id,
                family_name=family_name_for(head.name),
            )
            self.family_groups.append(group)
            head.family_group_id = group.id
            log.info("family group created group=%s head=%s", group.id, head.id)

        member.family_group_id = group.id

        head_wallet = self.effective_wallet(head.id)
        member_wallet = self._wallet_owned_by(member.id)
        if head_wallet is not None and member_wallet is not None and head_wallet.id != member_wallet.id:
            self._merge_wallets(member, member_wallet, head_wallet)

        # spend lands on whoever actually heads the group
        group_head = self._user(group.head_user_id) or head
        group_head.lifetime_spend += member.lifetime_spend
        self.tiers.apply(group_head)

        log.info(
            "family linked group=%s head=%s member=%s", group.id, group_head.id, member.id
        )
        return OperationResult(
            success=True,
            message=f"{member.name} linked to family successfully. Points & History merged.",
            snapshot=self.get_snapshot(),
        )

    def _merge_wallets(self, member: User, member_wallet: Wallet, head_wallet: Wallet) -> None:
        transferred = int(member_wallet.balance)
        head_wallet.balance += transferred
        member_wallet.balance = 0

        moved = 0
        for tx in self.transactions:
            if tx.wallet_id == member_wallet.id:
                tx.wallet_id = head_wallet.id
                moved += 1

        if transferred > 0:
            self.transactions.insert(
                0,
                Transaction(
                    id=self.id_factory("tx-merge"),
                    wallet_id=head_wallet.id,
                    amount_paid=D("0"),
                    points_earned=0,
                    category=TransactionCategory.GENERAL,
                    type=TransactionType.EARN,
                    date=self.clock(),
                    description=f"Family Linked: {member.name} joined",
                ),
            )

        log.info(
            "wallet merged from=%s into=%s points=%s transactions_moved=%s",
            member_wallet.id, head_wallet.id, transferred, moved,
        )

    # -----------------------------
    # Read side
    # -----------------------------
    def get_snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            users=copy.deepcopy(self.users),
            wallets=copy.deepcopy(self.wallets),
            transactions=copy.deepcopy(self.transactions),
            family_groups=copy.deepcopy(self.family_groups),
        )

    def get_dashboard_stats(self) -> DashboardStats:
        total_liability = sum(int(w.balance) for w in self.wallets)
        total_revenue = sum(
            (t.amount_paid for t in self.transactions if t.type == TransactionType.EARN),
            D("0"),
        )
        upgrading_soon = sum(
            1
            for u in self.users
            if self.policy.is_upgrading_soon(u.current_tier, u.lifetime_spend)
        )
        return DashboardStats(
            total_liability=total_liability,
            total_revenue=total_revenue,
            upgrading_soon=upgrading_soon,
        )

    # -----------------------------
    # Helpers
    # -----------------------------
    @staticmethod
    def _reject(operation: str, message: str) -> OperationResult:
        log.info("%s rejected: %s", operation, message)
        return OperationResult.fail(message)
