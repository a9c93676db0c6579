"""
Tests for the ledger audit report
"""
from clinic_loyalty.services.ledger.ledger_audit import audit_snapshot
from clinic_loyalty.services.ledger.models import Tier, User
from clinic_loyalty.services.ledger.seed import demo_snapshot


def test_seed_passes_audit():
    report = audit_snapshot(demo_snapshot())

    assert report["ok"], report["problems"]
    assert report["total_points"] == 2400
    assert report["counts"] == {
        "users": 4,
        "wallets": 1,
        "transactions": 2,
        "family_groups": 1,
    }


def test_negative_balance_flagged():
    snapshot = demo_snapshot()
    snapshot.wallets[0].balance = -1

    report = audit_snapshot(snapshot)

    assert not report["ok"]
    assert not report["checks"]["balances_non_negative"]


def test_duplicate_mobile_flagged():
    snapshot = demo_snapshot()
    snapshot.users.append(User(id="user-9", mobile="9876543210", name="Copy"))

    report = audit_snapshot(snapshot)

    assert not report["checks"]["mobiles_unique"]


def test_tier_mismatch_flagged():
    snapshot = demo_snapshot()
    snapshot.users[0].current_tier = Tier.PLATINUM

    report = audit_snapshot(snapshot)

    assert not report["checks"]["tiers_consistent"]


def test_dangling_wallet_reference_flagged():
    snapshot = demo_snapshot()
    snapshot.transactions[0].wallet_id = "wallet-404"

    report = audit_snapshot(snapshot)

    assert not report["checks"]["transactions_reference_wallets"]
