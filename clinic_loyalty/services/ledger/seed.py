"""
Demo data: one household (the Menons), two clinic staff accounts and the
household's first two treatments.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from .models import (
    FamilyGroup,
    LedgerSnapshot,
    Role,
    Tier,
    Transaction,
    TransactionCategory,
    TransactionType,
    User,
    Wallet,
)


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def demo_snapshot() -> LedgerSnapshot:
    family_groups = [
        FamilyGroup(id="fam-1", head_user_id="user-1", family_name="The Menon Family"),
    ]

    users = [
        User(
            id="user-1",
            mobile="9876543210",
            name="Rohan Menon",
            role=Role.PATIENT,
            family_group_id="fam-1",
            lifetime_spend=Decimal("42000"),
            current_tier=Tier.GOLD,
            joined_at=_ts("2023-01-15T10:00:00"),
        ),
        User(
            id="user-2",
            mobile="9876543211",
            name="Anjali Menon",
            role=Role.PATIENT,
            family_group_id="fam-1",
            lifetime_spend=Decimal("5000"),
            current_tier=Tier.MEMBER,
            joined_at=_ts("2023-02-20T14:00:00"),
        ),
        User(
            id="doc-1",
            mobile="admin",
            name="Dr. Bastin Cherian",
            role=Role.ADMIN,
            joined_at=_ts("2022-11-01T09:00:00"),
        ),
        User(
            id="doc-2",
            mobile="admin2",
            name="Dr. Alda Davis",
            role=Role.ADMIN,
            joined_at=_ts("2023-01-01T09:00:00"),
        ),
    ]

    wallets = [
        # the head holds the household wallet
        Wallet(
            id="wallet-1",
            user_id="user-1",
            balance=2400,
            last_transaction_at=_ts("2023-10-05T16:30:00"),
        ),
    ]

    transactions = [
        Transaction(
            id="tx-2",
            wallet_id="wallet-1",
            amount_paid=Decimal("27000"),
            points_earned=1350,
            category=TransactionCategory.COSMETIC,
            type=TransactionType.EARN,
            date=_ts("2023-10-05T16:30:00"),
            description="Invisalign Installment 1",
        ),
        Transaction(
            id="tx-1",
            wallet_id="wallet-1",
            amount_paid=Decimal("15000"),
            points_earned=750,
            category=TransactionCategory.GENERAL,
            type=TransactionType.EARN,
            date=_ts("2023-09-01T10:00:00"),
            description="Root Canal Treatment",
        ),
    ]

    return LedgerSnapshot(
        users=users,
        wallets=wallets,
        transactions=transactions,
        family_groups=family_groups,
    )
