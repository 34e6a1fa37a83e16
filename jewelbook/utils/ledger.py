"""
Customer ledger bookkeeping for invoices.

An invoice moves through Posted -> (Reversed -> Posted) on edit and
Posted -> Reversed on delete. Posting records the customer's ledger before
(previous_balance) and after (current_outstanding) on the invoice itself, so
the invoice's own effect can later be taken back out without re-deriving it
from live data.

Rules per type:
- non_gst: the unpaid part (less any old gold/silver taken in exchange) is
  added to the ledger.
- repayment: total == paid == amount, nothing outstanding on the invoice,
  the amount comes off the ledger.
- gst: assumed settled at the counter; the ledger is never touched.
"""
from dataclasses import dataclass
from typing import Optional

from jewelbook.utils.currency import round_currency

INVOICE_TYPES = ("gst", "non_gst", "repayment")
LEDGER_TYPES = ("non_gst", "repayment")
PAYMENT_STATUSES = ("pending", "partial", "paid", "credit")


@dataclass(frozen=True)
class LedgerPosting:
    total_amount: float
    paid_amount: float
    balance_amount: float
    payment_status: str
    previous_balance: float
    current_outstanding: float
    new_ledger_balance: float     # customer ledger after posting
    touches_ledger: bool


def compute_balance_amount(total_amount: float, paid_amount: float) -> float:
    return round_currency(round_currency(total_amount) - round_currency(paid_amount))


def classify_payment_status(total_amount: float, paid_amount: float) -> str:
    total = round_currency(total_amount)
    paid = round_currency(paid_amount)
    if paid >= total:
        return "paid"
    if paid > 0:
        return "partial"
    return "pending"


def resolve_payment_status(total_amount: float, paid_amount: float,
                           override: Optional[str] = None) -> str:
    """An explicit status from the caller (e.g. "credit" on overpayment) wins."""
    if override:
        return override
    return classify_payment_status(total_amount, paid_amount)


def post_invoice(
    invoice_type: str,
    total_amount: float,
    paid_amount: float,
    previous_balance: float,
    old_item_value: float = 0.0,
    status_override: Optional[str] = None,
) -> LedgerPosting:
    if invoice_type not in INVOICE_TYPES:
        raise ValueError(f"Unknown invoice type: {invoice_type}")

    previous = round_currency(previous_balance)

    if invoice_type == "repayment":
        amount = round_currency(total_amount)
        outstanding = round_currency(previous - amount)
        return LedgerPosting(
            total_amount=amount,
            paid_amount=amount,
            balance_amount=0.0,
            payment_status="paid",
            previous_balance=previous,
            current_outstanding=outstanding,
            new_ledger_balance=outstanding,
            touches_ledger=True,
        )

    total = round_currency(total_amount)
    paid = round_currency(paid_amount)
    balance = compute_balance_amount(total, paid)
    status = resolve_payment_status(total, paid, status_override)

    if invoice_type == "gst":
        # informational only, ledger stays where it was
        return LedgerPosting(
            total_amount=total,
            paid_amount=paid,
            balance_amount=balance,
            payment_status=status,
            previous_balance=previous,
            current_outstanding=balance,
            new_ledger_balance=previous,
            touches_ledger=False,
        )

    outstanding = round_currency(previous + balance - round_currency(old_item_value))
    return LedgerPosting(
        total_amount=total,
        paid_amount=paid,
        balance_amount=balance,
        payment_status=status,
        previous_balance=previous,
        current_outstanding=outstanding,
        new_ledger_balance=outstanding,
        touches_ledger=True,
    )


def ledger_effect(invoice) -> float:
    """Signed amount this invoice added to its customer's ledger when it was posted."""
    invoice_type = getattr(invoice, "type", None)
    if invoice_type == "repayment":
        return -round_currency(getattr(invoice, "total_amount", 0) or 0)
    if invoice_type != "non_gst":
        return 0.0

    previous = round_currency(getattr(invoice, "previous_balance", 0) or 0)
    outstanding = round_currency(getattr(invoice, "current_outstanding", 0) or 0)
    if previous or outstanding:
        return round_currency(outstanding - previous)
    # rows from before the snapshot columns existed
    balance = round_currency(getattr(invoice, "balance_amount", 0) or 0)
    old_value = round_currency(getattr(invoice, "old_item_value", 0) or 0)
    return round_currency(balance - old_value)


def reverse_posting(ledger_balance: float, invoice) -> float:
    """Ledger balance with this invoice's effect taken back out."""
    return round_currency(round_currency(ledger_balance) - ledger_effect(invoice))
