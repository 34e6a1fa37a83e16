from types import SimpleNamespace

import pytest

from jewelbook.utils.ledger import (
    classify_payment_status, compute_balance_amount, ledger_effect,
    post_invoice, resolve_payment_status, reverse_posting,
)


def _as_invoice(invoice_type, posting, old_item_value=0.0):
    return SimpleNamespace(
        type=invoice_type,
        total_amount=posting.total_amount,
        balance_amount=posting.balance_amount,
        old_item_value=old_item_value,
        previous_balance=posting.previous_balance,
        current_outstanding=posting.current_outstanding,
    )


def test_payment_status():
    assert classify_payment_status(500, 0) == "pending"
    assert classify_payment_status(500, 200) == "partial"
    assert classify_payment_status(500, 500) == "paid"
    assert classify_payment_status(500, 600) == "paid"
    assert resolve_payment_status(500, 600, "credit") == "credit"


def test_balance_amount_is_rounded():
    assert compute_balance_amount(0.3, 0.1) == 0.2


def test_non_gst_adds_unpaid_part():
    p = post_invoice("non_gst", 500, 200, previous_balance=1000)
    assert p.balance_amount == 300
    assert p.payment_status == "partial"
    assert p.previous_balance == 1000
    assert p.current_outstanding == 1300
    assert p.new_ledger_balance == 1300
    assert p.touches_ledger


def test_non_gst_old_item_is_deducted():
    p = post_invoice("non_gst", 1000, 0, previous_balance=100, old_item_value=250)
    assert p.balance_amount == 1000
    assert p.current_outstanding == 850


def test_repayment_reduces_ledger():
    p = post_invoice("repayment", 400, 0, previous_balance=1300)
    assert (p.total_amount, p.paid_amount, p.balance_amount) == (400, 400, 0)
    assert p.payment_status == "paid"
    assert p.current_outstanding == 900
    assert p.new_ledger_balance == 900


def test_repayment_can_push_ledger_into_credit():
    p = post_invoice("repayment", 500, 500, previous_balance=200)
    assert p.new_ledger_balance == -300


def test_gst_leaves_ledger_alone():
    p = post_invoice("gst", 1000, 0, previous_balance=1300)
    assert p.current_outstanding == 1000
    assert p.new_ledger_balance == 1300
    assert not p.touches_ledger


def test_unknown_type():
    with pytest.raises(ValueError):
        post_invoice("estimate", 1, 0, previous_balance=0)


@pytest.mark.parametrize("invoice_type,total,paid,old", [
    ("non_gst", 500, 200, 0),
    ("non_gst", 1000, 0, 250),
    ("non_gst", 500, 600, 0),
    ("repayment", 400, 400, 0),
    ("gst", 1000, 0, 0),
])
def test_reverse_undoes_post(invoice_type, total, paid, old):
    p = post_invoice(invoice_type, total, paid, previous_balance=1000, old_item_value=old)
    inv = _as_invoice(invoice_type, p, old)
    assert reverse_posting(p.new_ledger_balance, inv) == 1000


def test_effect_survives_later_postings():
    first = post_invoice("non_gst", 500, 0, previous_balance=0)
    second = post_invoice("non_gst", 300, 0, previous_balance=first.new_ledger_balance)
    # taking the first one out must not disturb the second
    after = reverse_posting(second.new_ledger_balance, _as_invoice("non_gst", first))
    assert after == 300


def test_rows_without_snapshots_fall_back_to_balance():
    legacy = SimpleNamespace(
        type="non_gst", total_amount=500, balance_amount=300,
        old_item_value=0, previous_balance=0, current_outstanding=0,
    )
    assert ledger_effect(legacy) == 300
    assert reverse_posting(1300, legacy) == 1000
