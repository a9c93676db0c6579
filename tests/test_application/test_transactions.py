"""
Tests for LedgerEngine.process_transaction
"""
from decimal import Decimal

import pytest

from clinic_loyalty.services.ledger.models import (
    Tier,
    TransactionCategory,
    TransactionType,
)


EARN = TransactionType.EARN
REDEEM = TransactionType.REDEEM
GENERAL = TransactionCategory.GENERAL
COSMETIC = TransactionCategory.COSMETIC


def _register(engine, name="Asha Rao", mobile="9000000001"):
    result = engine.register_patient(name, mobile)
    assert result.success, result.message
    return result.user


def _wallet_of(engine, user_id):
    return engine.effective_wallet(user_id)


def test_earn_upgrades_and_rewards_at_new_rate(engine):
    """15000 crosses GOLD and is rewarded at 5%"""
    asha = _register(engine)

    result = engine.process_transaction(asha.id, 15000, GENERAL, EARN)

    assert result.success
    assert result.message == "Processed ₹15000. Earned 750 pts."
    head = engine.head_user(asha.id)
    assert head.current_tier == Tier.GOLD
    assert head.lifetime_spend == Decimal("15000")
    assert _wallet_of(engine, asha.id).balance == 750

    tx = result.snapshot.transactions[0]
    assert tx.points_earned == 750
    assert tx.amount_paid == Decimal("15000")
    assert tx.type == EARN
    assert tx.description == "GENERAL - Treatment"


def test_earn_below_threshold_uses_member_rate(engine):
    asha = _register(engine)

    result = engine.process_transaction(asha.id, 10000, GENERAL, EARN)

    assert result.success
    assert engine.head_user(asha.id).current_tier == Tier.MEMBER
    assert result.transaction.points_earned == 200


@pytest.mark.parametrize("amount", ["10000.01", "10001"])
def test_earn_just_above_threshold_is_gold(engine, amount):
    asha = _register(engine)

    engine.process_transaction(asha.id, Decimal(amount), GENERAL, EARN)

    assert engine.head_user(asha.id).current_tier == Tier.GOLD
    assert _wallet_of(engine, asha.id).balance == 500


def test_crossing_threshold_across_transactions(engine):
    asha = _register(engine)
    engine.process_transaction(asha.id, 9000, GENERAL, EARN)

    result = engine.process_transaction(asha.id, 2000, GENERAL, EARN)

    assert engine.head_user(asha.id).current_tier == Tier.GOLD
    assert result.transaction.points_earned == 100
    assert _wallet_of(engine, asha.id).balance == 180 + 100


def test_redeem_non_cosmetic_rejected(engine):
    asha = _register(engine)
    engine.process_transaction(asha.id, 15000, GENERAL, EARN)

    result = engine.process_transaction(asha.id, 100, GENERAL, REDEEM)

    assert not result.success
    assert result.message == "Points can only be redeemed for Cosmetic treatments."
    assert result.snapshot is None
    assert _wallet_of(engine, asha.id).balance == 750


def test_redeem_hygiene_rejected_even_with_balance(engine):
    asha = _register(engine)
    engine.process_transaction(asha.id, 15000, GENERAL, EARN)

    result = engine.process_transaction(asha.id, 1, TransactionCategory.HYGIENE, REDEEM)

    assert not result.success
    assert _wallet_of(engine, asha.id).balance == 750


def test_redeem_cosmetic(engine):
    asha = _register(engine)
    engine.process_transaction(asha.id, 15000, GENERAL, EARN)

    result = engine.process_transaction(asha.id, 100, COSMETIC, REDEEM)

    assert result.success
    assert result.message == "Redeemed 100 pts successfully."
    assert _wallet_of(engine, asha.id).balance == 650
    tx = result.snapshot.transactions[0]
    assert tx.points_earned == -100
    assert tx.amount_paid == Decimal("0")
    assert tx.description == "COSMETIC - Redemption"


def test_redeem_does_not_touch_lifetime_spend(engine):
    asha = _register(engine)
    engine.process_transaction(asha.id, 15000, GENERAL, EARN)

    engine.process_transaction(asha.id, 100, COSMETIC, REDEEM)

    assert engine.head_user(asha.id).lifetime_spend == Decimal("15000")


def test_redeem_insufficient_balance(engine):
    asha = _register(engine)
    engine.process_transaction(asha.id, 15000, GENERAL, EARN)
    before = engine.get_snapshot().to_dict()

    result = engine.process_transaction(asha.id, 751, COSMETIC, REDEEM)

    assert not result.success
    assert result.message == "Insufficient points balance."
    assert engine.get_snapshot().to_dict() == before


def test_redeem_entire_balance(engine):
    asha = _register(engine)
    engine.process_transaction(asha.id, 15000, GENERAL, EARN)

    result = engine.process_transaction(asha.id, 750, COSMETIC, REDEEM)

    assert result.success
    assert _wallet_of(engine, asha.id).balance == 0


def test_redeem_fractional_points_rejected(engine):
    asha = _register(engine)
    engine.process_transaction(asha.id, 15000, GENERAL, EARN)

    result = engine.process_transaction(asha.id, Decimal("10.5"), COSMETIC, REDEEM)

    assert not result.success
    assert result.message == "Redeem amount must be a whole number of points."


def test_unknown_patient(engine):
    result = engine.process_transaction("user-404", 100, GENERAL, EARN)

    assert not result.success
    assert result.message == "User not found"


def test_patient_without_wallet(seeded_engine):
    """Staff accounts have no wallet"""
    result = seeded_engine.process_transaction("doc-1", 100, GENERAL, EARN)

    assert not result.success
    assert result.message == "Wallet not found"


@pytest.mark.parametrize("amount", [0, -5, "abc", float("nan"), float("inf"), None, True])
def test_invalid_amounts_rejected(engine, amount):
    asha = _register(engine)
    before = engine.get_snapshot().to_dict()

    result = engine.process_transaction(asha.id, amount, GENERAL, EARN)

    assert not result.success
    assert result.message == "Amount must be a positive number."
    assert engine.get_snapshot().to_dict() == before


def test_unknown_category_and_type(engine):
    asha = _register(engine)

    bad_category = engine.process_transaction(asha.id, 100, "SURGERY", EARN)
    bad_type = engine.process_transaction(asha.id, 100, GENERAL, "REFUND")

    assert not bad_category.success
    assert "category" in bad_category.message
    assert not bad_type.success
    assert "type" in bad_type.message


def test_string_enums_are_accepted(engine):
    asha = _register(engine)

    result = engine.process_transaction(asha.id, "15000", "general", "earn")

    assert result.success
    assert result.transaction.category == GENERAL


def test_ledger_is_most_recent_first(engine):
    asha = _register(engine)
    first = engine.process_transaction(asha.id, 1000, GENERAL, EARN).transaction
    second = engine.process_transaction(asha.id, 2000, GENERAL, EARN).transaction

    ids = [t.id for t in engine.get_snapshot().transactions]

    assert ids[:2] == [second.id, first.id]


def test_wallet_last_transaction_at_updated(engine, clock):
    asha = _register(engine)
    registered_at = _wallet_of(engine, asha.id).last_transaction_at

    result = engine.process_transaction(asha.id, 1000, GENERAL, EARN)

    wallet = _wallet_of(engine, asha.id)
    assert wallet.last_transaction_at > registered_at
    assert wallet.last_transaction_at == result.transaction.date


def test_lifetime_spend_never_decreases(engine):
    asha = _register(engine)
    spends = []
    tiers = []
    order = [Tier.MEMBER, Tier.GOLD, Tier.PLATINUM]
    for amount, category, kind in [
        (8000, GENERAL, EARN),
        (100, COSMETIC, REDEEM),
        (7000, GENERAL, EARN),
        (500, COSMETIC, REDEEM),
        (40000, GENERAL, EARN),
        (9999, COSMETIC, REDEEM),
    ]:
        engine.process_transaction(asha.id, amount, category, kind)
        head = engine.head_user(asha.id)
        spends.append(head.lifetime_spend)
        tiers.append(order.index(head.current_tier))

    assert spends == sorted(spends)
    assert tiers == sorted(tiers)
    assert tiers[-1] == 2


def test_snapshot_is_a_copy(engine):
    asha = _register(engine)
    result = engine.process_transaction(asha.id, 1000, GENERAL, EARN)

    result.snapshot.wallets[0].balance = 999999

    assert _wallet_of(engine, asha.id).balance == 20
