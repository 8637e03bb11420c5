"""Tests for cart accumulation, priority fees and the payment lock."""
from datetime import datetime

import pytest

from pos_pricing.engine.errors import CommitError, InputError
from pos_pricing.policy import PaymentStatus, Priority, Stage, Transaction


@pytest.fixture
def txn(settings):
    return Transaction(settings)


@pytest.fixture
def mug_payload():
    return {"product": {"id": "MUG", "name": "Custom Mug", "base_price": 35000}, "qty": 2}


def test_add_and_remove_items(txn, mug_payload):
    item = txn.add_item(mug_payload)
    assert txn.items == (item,)

    assert txn.remove_item(item.id) is True
    assert txn.remove_item(item.id) is False
    assert txn.items == ()


def test_invalid_payload_leaves_cart_untouched(txn, mug_payload):
    txn.add_item(mug_payload)
    with pytest.raises(InputError):
        txn.add_item({**mug_payload, "qty": 0})
    assert len(txn.items) == 1


def test_discount_is_clamped_to_subtotal(txn, mug_payload):
    txn.add_item(mug_payload)
    txn.set_discount(10000)
    assert txn.calculate_total() == (70000, 10000, 60000)

    txn.set_discount(1_000_000)
    assert txn.calculate_total() == (70000, 70000, 0)


def test_negative_discount_is_rejected(txn):
    with pytest.raises(CommitError):
        txn.set_discount(-1)


def test_express_before_cutoff_targets_today(txn, mug_payload, settings):
    txn.add_item(mug_payload)
    target = txn.set_priority(Priority.EXPRESS, now=datetime(2026, 3, 2, 10, 30))

    assert target == datetime(2026, 3, 2, 17, 0)
    fees = [i for i in txn.items if i.product_id == "SERVICE_EXPRESS"]
    assert len(fees) == 1
    assert fees[0].total_price == settings.express_fee


def test_express_after_cutoff_adds_hours(txn, settings):
    target = txn.set_priority("EXPRESS", now=datetime(2026, 3, 2, 18, 0))
    assert target == datetime(2026, 3, 2, 23, 0)


def test_only_one_priority_fee_line(txn, mug_payload, settings):
    txn.add_item(mug_payload)
    txn.set_priority(Priority.EXPRESS, now=datetime(2026, 3, 2, 9, 0))
    txn.set_priority(Priority.URGENT, now=datetime(2026, 3, 2, 9, 0))

    fee_ids = [i.product_id for i in txn.items if i.product_id.startswith("SERVICE_")]
    assert fee_ids == ["SERVICE_URGENT"]
    assert txn.target_date == datetime(2026, 3, 2, 11, 0)
    assert txn.calculate_total()[0] == 70000 + settings.urgent_fee

    txn.set_priority(Priority.STANDARD, now=datetime(2026, 3, 2, 9, 0))
    assert [i.product_id for i in txn.items] == ["MUG"]
    assert txn.target_date == datetime(2026, 3, 3, 9, 0)


def test_begin_payment_requires_items(txn):
    with pytest.raises(CommitError) as exc:
        txn.begin_payment()
    assert exc.value.code == "EMPTY_CART"


def test_cash_payment_must_be_positive(txn, mug_payload):
    txn.add_item(mug_payload)
    txn.begin_payment()
    with pytest.raises(CommitError) as exc:
        txn.confirm_payment(0)
    assert exc.value.code == "INVALID_PAYMENT"
    assert txn.stage is Stage.AWAITING_PAYMENT


@pytest.mark.parametrize("amount", [0, -5, float("nan"), "70000"])
def test_rejected_payment_leaves_the_cart_open(txn, mug_payload, amount):
    txn.add_item(mug_payload)
    with pytest.raises(CommitError) as exc:
        txn.confirm_payment(amount)
    assert exc.value.code == "INVALID_PAYMENT"
    assert txn.stage is Stage.CART
    txn.add_item(mug_payload)


def test_confirmed_payment_locks_the_cart(txn, mug_payload):
    item = txn.add_item(mug_payload)
    txn.confirm_payment(70000)
    assert txn.stage is Stage.POST_PAYMENT

    for mutate in (
        lambda: txn.add_item(mug_payload),
        lambda: txn.remove_item(item.id),
        lambda: txn.clear(),
        lambda: txn.set_discount(5),
        lambda: txn.set_priority(Priority.URGENT),
    ):
        with pytest.raises(CommitError) as exc:
            mutate()
        assert exc.value.code == "CART_LOCKED"
    assert txn.items == (item,)


def test_reset_unlocks(txn, mug_payload):
    txn.add_item(mug_payload)
    txn.confirm_payment(70000)
    txn.reset()

    assert txn.stage is Stage.CART
    assert txn.items == ()
    txn.add_item(mug_payload)


def test_finalize_hands_payload_to_collaborator(txn, mug_payload):
    txn.add_item(mug_payload)
    txn.set_customer({"name": "  Budi  ", "phone": "0812"})
    txn.set_discount(5000)
    txn.confirm_payment(30000)

    received = []
    order = txn.finalize({"name": "Sari"}, lambda payload: received.append(payload) or {"id": "ORD-1"})

    assert order == {"id": "ORD-1"}
    payload = received[0]
    assert payload.total == 65000
    assert payload.paid == 30000
    assert payload.remaining == 35000
    assert payload.payment_status is PaymentStatus.PARTIAL
    assert payload.customer.name == "Budi"
    assert payload.received_by == "Sari"


def test_tempo_order_is_unpaid(txn, mug_payload):
    txn.add_item(mug_payload)
    txn.set_customer("Budi")
    txn.confirm_payment(0, is_tempo=True)

    received = []
    txn.finalize({"name": "Sari"}, lambda payload: received.append(payload) or {"id": "ORD-2"})
    assert received[0].payment_status is PaymentStatus.UNPAID
    assert received[0].paid == 0
    assert received[0].remaining == 70000
