# jewelbook/routers/invoices.py
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from fastapi import APIRouter, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from jewelbook.db import get_session
from jewelbook.models import (
    Customer, Invoice, InvoiceItem, Item,
    InvoiceIn, InvoiceItemIn, InvoiceOut, InvoiceDetailOut, InvoiceItemOut,
    InvoiceWriteOut, InvoiceDeleteOut, NextNumberOut,
    now_ts,
)
from jewelbook.utils.currency import round_currency, round_weight
from jewelbook.utils.invoice_numbers import allocate_invoice_number, next_invoice_number
from jewelbook.utils.ledger import (
    INVOICE_TYPES, PAYMENT_STATUSES,
    LedgerPosting, post_invoice, reverse_posting,
)

logger = logging.getLogger("api.invoices")

router = APIRouter()

PAYMENT_METHODS = {"cash", "upi", "cheque"}
DISCOUNT_TYPES = {"none", "percentage", "fixed"}
OLD_ITEM_TYPES = {"old_gold", "old_silver"}


# ---------- helpers ----------

def _parse_ymd(date_str: Optional[str]) -> str:
    if not date_str:
        return date.today().isoformat()
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date().isoformat()
    except ValueError:
        raise HTTPException(status_code=400, detail="invoice_date must be YYYY-MM-DD")


def _validate(payload: InvoiceIn) -> Tuple[Optional[str], float, str]:
    """Reject bad input before anything is written. Returns (old_item_type, old_item_value, invoice_date)."""
    if payload.type not in INVOICE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid invoice type")
    if payload.payment_method not in PAYMENT_METHODS:
        raise HTTPException(status_code=400, detail="Invalid payment_method")
    if payload.discount_type not in DISCOUNT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid discount_type")
    if payload.payment_status is not None and payload.payment_status not in PAYMENT_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid payment_status")

    for field in ("subtotal", "discount_value", "discount_amount", "gst_amount", "total_amount", "paid_amount"):
        if getattr(payload, field) < 0:
            raise HTTPException(status_code=400, detail=f"{field} cannot be negative")

    if payload.type == "repayment":
        if round_currency(payload.total_amount) <= 0:
            raise HTTPException(status_code=400, detail="Invalid repayment amount")
    elif not payload.items:
        raise HTTPException(status_code=400, detail="Invoice must have at least one item")

    for line in payload.items:
        if not (line.item_name or "").strip():
            raise HTTPException(status_code=400, detail="Every line needs an item_name")
        if line.pc < 1:
            raise HTTPException(status_code=400, detail="pc must be at least 1")
        for field in ("gross_weight", "add_weight", "making_charges", "rate", "labour", "discount"):
            if getattr(line, field) < 0:
                raise HTTPException(status_code=400, detail=f"{field} cannot be negative")

    # old gold/silver exchange only exists on the ledger (non-GST) side
    old_type, old_value = None, 0.0
    if payload.type == "non_gst":
        old_value = round_currency(payload.old_item_value or 0)
        if old_value < 0:
            raise HTTPException(status_code=400, detail="old_item_value cannot be negative")
        if payload.old_item_type:
            if payload.old_item_type not in OLD_ITEM_TYPES:
                raise HTTPException(status_code=400, detail="Invalid old_item_type")
            old_type = payload.old_item_type
        elif old_value > 0:
            raise HTTPException(status_code=400, detail="old_item_type is required with old_item_value")

    return old_type, old_value, _parse_ymd(payload.invoice_date)


def _check_items_exist(session, lines: List[InvoiceItemIn]) -> None:
    for line in lines:
        if line.item_id is not None and not session.get(Item, line.item_id):
            raise HTTPException(status_code=404, detail=f"Item {line.item_id} not found")


def build_line_item(invoice_id: int, invoice_type: str, line: InvoiceItemIn) -> InvoiceItem:
    """
    Snapshot one line. net weight = gross + polish + making% of gross,
    total = (net * rate + labour) * pc - discount.
    Repayment lines are receipts and keep the amount they were given.
    """
    net = line.gross_weight + line.add_weight + (line.gross_weight * line.making_charges) / 100
    if invoice_type == "repayment":
        total = round_currency(line.total)
    else:
        total = round_currency((net * line.rate + line.labour) * line.pc - line.discount)

    return InvoiceItem(
        invoice_id=invoice_id,
        item_id=line.item_id,
        item_name=line.item_name.strip(),
        stamp=line.stamp or None,
        remarks=line.remarks or None,
        hsn=line.hsn or None,
        unit=line.unit or "GM",
        pc=line.pc,
        gross_weight=round_weight(line.gross_weight),
        add_weight=round_weight(line.add_weight),
        making_charges=line.making_charges,
        net_weight=round_weight(net),
        rate=round_currency(line.rate),
        labour=round_currency(line.labour),
        discount=round_currency(line.discount),
        total=total,
    )


def _insert_items(session, invoice: Invoice, lines: List[InvoiceItemIn]) -> None:
    for line in lines:
        session.add(build_line_item(invoice.id, invoice.type, line))


def _delete_items(session, invoice_id: int) -> None:
    rows = session.exec(select(InvoiceItem).where(InvoiceItem.invoice_id == invoice_id)).all()
    for r in rows:
        session.delete(r)
    session.flush()


def _fill_invoice(
    inv: Invoice,
    payload: InvoiceIn,
    posting: LedgerPosting,
    old_type: Optional[str],
    old_value: float,
    invoice_date: str,
) -> None:
    inv.customer_id = payload.customer_id
    inv.type = payload.type
    inv.invoice_date = invoice_date
    inv.subtotal = round_currency(payload.subtotal) or (
        posting.total_amount if payload.type == "repayment" else 0.0
    )
    inv.discount_type = payload.discount_type
    inv.discount_value = round_currency(payload.discount_value)
    inv.discount_amount = round_currency(payload.discount_amount)
    inv.gst_amount = round_currency(payload.gst_amount) if payload.type == "gst" else 0.0
    inv.total_amount = posting.total_amount
    inv.paid_amount = posting.paid_amount
    inv.balance_amount = posting.balance_amount
    inv.payment_method = payload.payment_method
    inv.payment_status = posting.payment_status
    inv.status = posting.payment_status
    inv.old_item_type = old_type
    inv.old_item_value = old_value
    inv.previous_balance = posting.previous_balance
    inv.current_outstanding = posting.current_outstanding
    inv.notes = payload.notes
    inv.updated_at = now_ts()


def _warn_if_stale(payload: InvoiceIn, customer_id: int, posting: LedgerPosting) -> None:
    # the form computes balances from what it loaded; the stored ledger is what counts
    sent = payload.previous_balance
    if sent is not None and round_currency(sent) != posting.previous_balance:
        logger.warning(
            "Customer %s: form sent previous_balance %.2f, ledger is %.2f; using ledger",
            customer_id, sent, posting.previous_balance,
        )
    sent = payload.new_ledger_balance
    if sent is not None and posting.touches_ledger and round_currency(sent) != posting.new_ledger_balance:
        logger.warning(
            "Customer %s: form expected new balance %.2f, computed %.2f",
            customer_id, sent, posting.new_ledger_balance,
        )


def _to_out(inv: Invoice, customer_name: Optional[str]) -> InvoiceOut:
    return InvoiceOut(**inv.model_dump(), customer_name=customer_name)


def _write_failed(session, action: str, e: Exception) -> HTTPException:
    session.rollback()
    logger.exception("Failed to %s invoice", action)
    if isinstance(e, IntegrityError):
        return HTTPException(status_code=409, detail=f"Failed to {action} invoice: conflicting data")
    return HTTPException(status_code=500, detail=f"Failed to {action} invoice: {e}")


# ---------- Endpoints ----------

@router.get("/", response_model=List[InvoiceOut])
def list_invoices(
    type: Optional[str] = Query(None, description="gst | non_gst | repayment"),
    customer_id: Optional[int] = Query(None),
    payment_status: Optional[str] = Query(None),
    from_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    to_date: Optional[str] = Query(None, description="YYYY-MM-DD (inclusive)"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    with get_session() as session:
        stmt = select(Invoice, Customer.name).outerjoin(Customer, Invoice.customer_id == Customer.id)
        if type:
            stmt = stmt.where(Invoice.type == type)
        if customer_id is not None:
            stmt = stmt.where(Invoice.customer_id == customer_id)
        if payment_status:
            stmt = stmt.where(Invoice.payment_status == payment_status)
        # ISO date strings compare correctly as text
        if from_date:
            stmt = stmt.where(Invoice.invoice_date >= _parse_ymd(from_date))
        if to_date:
            stmt = stmt.where(Invoice.invoice_date <= _parse_ymd(to_date))

        stmt = stmt.order_by(Invoice.created_at.desc(), Invoice.id.desc()).offset(offset).limit(limit)
        return [_to_out(inv, name) for inv, name in session.exec(stmt).all()]


# must be declared before "/{invoice_id}"
@router.get("/next-number", response_model=NextNumberOut)
def preview_next_number(type: str = Query(..., description="gst | non_gst | repayment")):
    if type not in INVOICE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid invoice type")
    with get_session() as session:
        return NextNumberOut(type=type, invoice_number=next_invoice_number(session, type))


@router.get("/{invoice_id}", response_model=InvoiceDetailOut)
def get_invoice(invoice_id: int):
    with get_session() as session:
        inv = session.get(Invoice, invoice_id)
        if not inv:
            raise HTTPException(status_code=404, detail="Invoice not found")
        c = session.get(Customer, inv.customer_id)
        items = session.exec(
            select(InvoiceItem).where(InvoiceItem.invoice_id == inv.id).order_by(InvoiceItem.id)
        ).all()
        return InvoiceDetailOut(
            **inv.model_dump(),
            customer_name=c.name if c else None,
            mobile=c.mobile if c else None,
            address_line1=c.address_line1 if c else None,
            address_line2=c.address_line2 if c else None,
            city=c.city if c else None,
            state=c.state if c else None,
            pincode=c.pincode if c else None,
            items=[InvoiceItemOut(**i.model_dump()) for i in items],
        )


@router.post("/", response_model=InvoiceWriteOut, status_code=201)
def create_invoice(payload: InvoiceIn):
    old_type, old_value, invoice_date = _validate(payload)

    with get_session() as session:
        customer = session.get(Customer, payload.customer_id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")
        _check_items_exist(session, payload.items)

        posting = post_invoice(
            payload.type,
            payload.total_amount,
            payload.paid_amount,
            previous_balance=customer.ledger_balance,
            old_item_value=old_value,
            status_override=payload.payment_status,
        )
        _warn_if_stale(payload, customer.id, posting)

        # number, invoice, items and ledger commit or roll back together
        try:
            number = allocate_invoice_number(session, payload.type)
            inv = Invoice(invoice_number=number, customer_id=customer.id)
            _fill_invoice(inv, payload, posting, old_type, old_value, invoice_date)
            session.add(inv)
            session.flush()

            _insert_items(session, inv, payload.items)

            if posting.touches_ledger:
                customer.ledger_balance = posting.new_ledger_balance
                customer.updated_at = now_ts()
                session.add(customer)

            session.commit()
        except Exception as e:
            raise _write_failed(session, "create", e)

        session.refresh(inv)
        logger.info(
            "Invoice %s (%s) for customer %s: ledger %.2f -> %.2f",
            inv.invoice_number, inv.type, customer.id,
            posting.previous_balance, posting.new_ledger_balance,
        )
        return InvoiceWriteOut(
            id=inv.id,
            invoice_number=inv.invoice_number,
            message="Repayment recorded successfully" if inv.type == "repayment" else "Invoice created successfully",
            payment_status=posting.payment_status,
            new_ledger_balance=posting.new_ledger_balance,
        )


@router.put("/{invoice_id}", response_model=InvoiceWriteOut)
def update_invoice(invoice_id: int, payload: InvoiceIn):
    """
    Full replace. The stored invoice is first reversed out of its customer's
    ledger, then the edited values are posted on top of that reversed balance,
    and the line items are swapped wholesale.
    Assumes nobody else is editing this customer's invoices at the same time.
    """
    old_type, old_value, invoice_date = _validate(payload)

    with get_session() as session:
        inv = session.get(Invoice, invoice_id)
        if not inv:
            raise HTTPException(status_code=404, detail="Invoice not found")
        if payload.type != inv.type:
            raise HTTPException(
                status_code=400,
                detail="Invoice type cannot be changed; delete and create a new invoice instead",
            )

        target = session.get(Customer, payload.customer_id)
        if not target:
            raise HTTPException(status_code=404, detail="Customer not found")
        _check_items_exist(session, payload.items)

        moved = target.id != inv.customer_id
        source = session.get(Customer, inv.customer_id) if moved else target

        reversed_balance = reverse_posting(source.ledger_balance, inv) if source else 0.0
        previous = round_currency(target.ledger_balance) if moved else reversed_balance

        posting = post_invoice(
            payload.type,
            payload.total_amount,
            payload.paid_amount,
            previous_balance=previous,
            old_item_value=old_value,
            status_override=payload.payment_status,
        )
        _warn_if_stale(payload, target.id, posting)

        try:
            if moved and source:
                source.ledger_balance = reversed_balance
                source.updated_at = now_ts()
                session.add(source)

            _fill_invoice(inv, payload, posting, old_type, old_value, invoice_date)
            session.add(inv)

            _delete_items(session, inv.id)
            _insert_items(session, inv, payload.items)

            if posting.touches_ledger:
                target.ledger_balance = posting.new_ledger_balance
                target.updated_at = now_ts()
                session.add(target)

            session.commit()
        except Exception as e:
            raise _write_failed(session, "update", e)

        logger.info(
            "Invoice %s updated for customer %s: ledger reversed to %.2f, now %.2f",
            inv.invoice_number, target.id, posting.previous_balance, posting.new_ledger_balance,
        )
        return InvoiceWriteOut(
            id=inv.id,
            invoice_number=inv.invoice_number,
            message="Invoice updated successfully",
            payment_status=posting.payment_status,
            new_ledger_balance=posting.new_ledger_balance,
        )


@router.delete("/{invoice_id}", response_model=InvoiceDeleteOut)
def delete_invoice(invoice_id: int):
    with get_session() as session:
        inv = session.get(Invoice, invoice_id)
        if not inv:
            raise HTTPException(status_code=404, detail="Invoice not found")
        customer = session.get(Customer, inv.customer_id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")

        before = round_currency(customer.ledger_balance)
        new_balance = reverse_posting(before, inv)
        number = inv.invoice_number

        try:
            _delete_items(session, inv.id)
            session.delete(inv)
            customer.ledger_balance = new_balance
            customer.updated_at = now_ts()
            session.add(customer)
            session.commit()
        except Exception as e:
            raise _write_failed(session, "delete", e)

        logger.info(
            "Invoice %s deleted for customer %s: ledger %.2f -> %.2f",
            number, customer.id, before, new_balance,
        )
        return InvoiceDeleteOut(
            message="Invoice deleted successfully",
            customer_id=customer.id,
            updated_balance=new_balance,
        )
