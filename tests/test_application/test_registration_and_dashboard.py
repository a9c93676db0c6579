"""
Tests for patient registration, snapshots and dashboard stats
"""
from decimal import Decimal

from clinic_loyalty.services.ledger.ledger_engine import LedgerEngine
from clinic_loyalty.services.ledger.models import (
    Role,
    Tier,
    TransactionCategory,
    TransactionType,
)
from clinic_loyalty.services.ledger.seed import demo_snapshot


def test_register_patient_creates_user_and_wallet(engine):
    result = engine.register_patient("Asha Rao", "9000000001")

    assert result.success
    assert result.message == "Patient registered successfully."
    user = result.user
    assert user.role == Role.PATIENT
    assert user.lifetime_spend == Decimal("0")
    assert user.current_tier == Tier.MEMBER
    assert user.family_group_id is None

    wallets = [w for w in result.snapshot.wallets if w.user_id == user.id]
    assert len(wallets) == 1
    assert wallets[0].balance == 0
    assert engine.effective_wallet(user.id).id == wallets[0].id


def test_register_uses_clock_and_ids(engine, clock):
    expected = clock.now

    user = engine.register_patient("Asha Rao", "9000000001").user

    assert user.id == "user-1"
    assert user.joined_at == expected
    assert engine.wallets[0].id == "wallet-2"


def test_register_duplicate_mobile_rejected(engine):
    engine.register_patient("Asha Rao", "9000000001")

    result = engine.register_patient("Someone Else", "9000000001")

    assert not result.success
    assert result.message == "Patient with this mobile number already exists."
    assert len(engine.users) == 1
    assert len(engine.wallets) == 1


def test_register_requires_name_and_mobile(engine):
    assert not engine.register_patient("", "9000000001").success
    assert not engine.register_patient("Asha", "   ").success
    assert engine.users == []


def test_head_user_of_ungrouped_user_is_self(engine):
    user = engine.register_patient("Asha Rao", "9000000001").user

    assert engine.head_user(user.id).id == user.id
    assert engine.head_user("missing") is None
    assert engine.effective_wallet("missing") is None


def test_seeded_member_resolves_to_head(seeded_engine):
    assert seeded_engine.head_user("user-2").id == "user-1"
    assert seeded_engine.effective_wallet("user-2").id == "wallet-1"


def test_engine_does_not_mutate_caller_collections(clock, id_factory):
    snapshot = demo_snapshot()
    engine = LedgerEngine.from_snapshot(snapshot, clock=clock, id_factory=id_factory)

    engine.process_transaction("user-2", 1000, TransactionCategory.GENERAL, TransactionType.EARN)

    assert snapshot.wallets[0].balance == 2400
    assert snapshot.users[0].lifetime_spend == Decimal("42000")
    assert len(snapshot.transactions) == 2


def test_dashboard_stats_seeded(seeded_engine):
    stats = seeded_engine.get_dashboard_stats()

    assert stats.total_liability == 2400
    assert stats.total_revenue == Decimal("42000")
    assert stats.upgrading_soon == 0


def test_dashboard_revenue_ignores_redemptions(seeded_engine):
    seeded_engine.process_transaction(
        "user-1", 400, TransactionCategory.COSMETIC, TransactionType.REDEEM
    )

    stats = seeded_engine.get_dashboard_stats()

    assert stats.total_revenue == Decimal("42000")
    assert stats.total_liability == 2000


def test_dashboard_upgrading_soon(engine):
    close = engine.register_patient("Close Call", "1").user
    exact = engine.register_patient("Exact Line", "2").user
    far = engine.register_patient("Far Away", "3").user
    engine.process_transaction(close.id, 9500, TransactionCategory.GENERAL, TransactionType.EARN)
    engine.process_transaction(exact.id, 10000, TransactionCategory.GENERAL, TransactionType.EARN)
    engine.process_transaction(far.id, 5000, TransactionCategory.GENERAL, TransactionType.EARN)

    stats = engine.get_dashboard_stats()

    assert stats.upgrading_soon == 1
    assert stats.total_liability == 190 + 200 + 100
    assert stats.total_revenue == Decimal("24500")


def test_dashboard_to_dict(seeded_engine):
    assert seeded_engine.get_dashboard_stats().to_dict() == {
        "total_liability": 2400,
        "total_revenue": "42000.00",
        "upgrading_soon": 0,
    }


def test_snapshot_round_trip(seeded_engine):
    snapshot = seeded_engine.get_snapshot()

    restored = type(snapshot).from_dict(snapshot.to_dict())

    assert restored.to_dict() == snapshot.to_dict()
