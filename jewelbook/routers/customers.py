import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Response
from sqlalchemy import case, or_, func
from sqlmodel import select

from jewelbook.db import get_session
from jewelbook.models import (
    Customer, Invoice,
    CustomerCreate, CustomerUpdate, CustomerOut,
    InvoiceOut, RepaymentIn, RepaymentOut,
)
from jewelbook.utils.currency import round_currency

logger = logging.getLogger("api.customers")

router = APIRouter()

PAYMENT_METHODS = {"cash", "upi", "cheque"}


def _normalize_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    raw = str(v).strip()
    if raw == "":
        return None
    digits = "".join(ch for ch in raw if ch.isdigit())
    if len(digits) > 10:
        raise HTTPException(status_code=400, detail="Phone must be at most 10 digits")
    return digits if digits else None


def _normalize_name(v: Optional[str]) -> str:
    return " ".join(str(v or "").strip().split())


def _clean(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s if s else None


def _totals_query():
    """
    Customer rows with the derived invoice aggregates.
    total_pending only counts invoices with something still due, GST ones included,
    so it is not the same number as the stored ledger_balance.
    """
    pending = func.coalesce(
        func.sum(case((Invoice.balance_amount > 0, Invoice.balance_amount), else_=0)), 0
    )
    return (
        select(Customer, pending, func.count(Invoice.id))
        .outerjoin(Invoice, Invoice.customer_id == Customer.id)
        .group_by(Customer.id)
    )


def _to_out(customer: Customer, total_pending, total_invoices) -> CustomerOut:
    return CustomerOut(
        **customer.model_dump(),
        total_pending=round_currency(total_pending or 0),
        total_invoices=int(total_invoices or 0),
    )


def _invoice_count(session, customer_id: int) -> int:
    return session.exec(
        select(func.count(Invoice.id)).where(Invoice.customer_id == customer_id)
    ).one()


@router.get("/", response_model=List[CustomerOut])
def list_customers(
    filter: Optional[str] = Query(None, description="gst | regular"),
    q: Optional[str] = Query(None, description="Search name/mobile/city"),
    limit: int = Query(500, ge=1, le=2000),
    offset: int = Query(0, ge=0),
) -> List[CustomerOut]:
    with get_session() as session:
        stmt = _totals_query()
        if filter == "gst":
            stmt = stmt.where(Customer.is_gst == True)  # noqa: E712
        elif filter == "regular":
            stmt = stmt.where(or_(Customer.is_gst == False, Customer.is_gst.is_(None)))  # noqa: E712
        elif filter:
            raise HTTPException(status_code=400, detail="filter must be gst or regular")

        qq = (q or "").strip()
        if qq:
            like = f"%{qq.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(func.coalesce(Customer.name, "")).like(like),
                    func.lower(func.coalesce(Customer.mobile, "")).like(like),
                    func.lower(func.coalesce(Customer.city, "")).like(like),
                )
            )
        stmt = stmt.order_by(Customer.created_at.desc(), Customer.id.desc()).offset(offset).limit(limit)
        return [_to_out(c, pending, count) for c, pending, count in session.exec(stmt).all()]


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: int) -> CustomerOut:
    with get_session() as session:
        row = session.exec(_totals_query().where(Customer.id == customer_id)).first()
        if not row:
            raise HTTPException(status_code=404, detail="Customer not found")
        return _to_out(*row)


@router.post("/", response_model=CustomerOut, status_code=201)
def create_customer(payload: CustomerCreate) -> CustomerOut:
    name = _normalize_name(payload.name)
    if not name:
        raise HTTPException(status_code=400, detail="Customer name is required")

    now = datetime.now().isoformat(timespec="seconds")

    with get_session() as session:
        row = Customer(
            name=name,
            mobile=_normalize_phone(payload.mobile),
            alt_mobile=_normalize_phone(payload.alt_mobile),
            email=_clean(payload.email),
            address_line1=_clean(payload.address_line1),
            address_line2=_clean(payload.address_line2),
            city=_clean(payload.city),
            state=_clean(payload.state),
            pincode=_clean(payload.pincode),
            country=_clean(payload.country) or "India",
            image_url=_clean(payload.image_url),
            ledger_balance=round_currency(payload.ledger_balance),
            is_gst=bool(payload.is_gst),
            created_at=now,
            updated_at=now,
        )
        session.add(row)
        session.commit()
        session.refresh(row)
        logger.info("Customer %s created with opening balance %.2f", row.id, row.ledger_balance)
        return _to_out(row, 0, 0)


@router.patch("/{customer_id}", response_model=CustomerOut)
def update_customer(customer_id: int, payload: CustomerUpdate) -> CustomerOut:
    with get_session() as session:
        row = session.get(Customer, customer_id)
        if not row:
            raise HTTPException(status_code=404, detail="Customer not found")

        data = payload.model_dump(exclude_unset=True)
        if "name" in data:
            nm = _normalize_name(data.pop("name"))
            if not nm:
                raise HTTPException(status_code=400, detail="Customer name is required")
            row.name = nm
        for phone_field in ("mobile", "alt_mobile"):
            if phone_field in data:
                setattr(row, phone_field, _normalize_phone(data.pop(phone_field)))
        if "ledger_balance" in data:
            new_balance = data.pop("ledger_balance")
            if new_balance is None:
                raise HTTPException(status_code=400, detail="ledger_balance cannot be null")
            new_balance = round_currency(new_balance)
            if new_balance != round_currency(row.ledger_balance):
                logger.warning(
                    "Manual ledger edit on customer %s: %.2f -> %.2f",
                    customer_id, row.ledger_balance, new_balance,
                )
            row.ledger_balance = new_balance
        if "is_gst" in data:
            row.is_gst = bool(data.pop("is_gst"))
        for k, v in data.items():
            setattr(row, k, _clean(v))
        if not row.country:
            row.country = "India"

        row.updated_at = datetime.now().isoformat(timespec="seconds")
        session.add(row)
        session.commit()
        session.refresh(row)

        _, pending, count = session.exec(_totals_query().where(Customer.id == customer_id)).first()
        return _to_out(row, pending, count)


@router.delete("/{customer_id}", status_code=204)
def delete_customer(customer_id: int) -> Response:
    with get_session() as session:
        row = session.get(Customer, customer_id)
        if not row:
            raise HTTPException(status_code=404, detail="Customer not found")
        if _invoice_count(session, customer_id) > 0:
            raise HTTPException(
                status_code=400,
                detail="Cannot delete customer with existing invoices. Delete the invoices first.",
            )
        session.delete(row)
        session.commit()
        logger.info("Customer %s deleted", customer_id)
        return Response(status_code=204)


@router.get("/{customer_id}/transactions", response_model=List[InvoiceOut])
def customer_transactions(customer_id: int) -> List[InvoiceOut]:
    with get_session() as session:
        customer = session.get(Customer, customer_id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")
        rows = session.exec(
            select(Invoice)
            .where(Invoice.customer_id == customer_id)
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        ).all()
        return [InvoiceOut(**inv.model_dump(), customer_name=customer.name) for inv in rows]


@router.post("/{customer_id}/repayment", response_model=RepaymentOut)
def record_repayment(customer_id: int, payload: RepaymentIn) -> RepaymentOut:
    """
    Quick repayment straight against the ledger.
    No invoice row is written; use a "repayment" invoice when a receipt is needed.
    """
    amount = round_currency(payload.amount)
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Invalid repayment amount")
    if payload.payment_method not in PAYMENT_METHODS:
        raise HTTPException(status_code=400, detail="Invalid payment_method")

    with get_session() as session:
        row = session.get(Customer, customer_id)
        if not row:
            raise HTTPException(status_code=404, detail="Customer not found")

        previous = round_currency(row.ledger_balance)
        new_balance = round_currency(previous - amount)
        row.ledger_balance = new_balance
        row.updated_at = datetime.now().isoformat(timespec="seconds")
        session.add(row)
        session.commit()

        logger.info(
            "Direct repayment of %.2f (%s) for customer %s: %.2f -> %.2f",
            amount, payload.payment_method, customer_id, previous, new_balance,
        )
        return RepaymentOut(
            message="Repayment recorded successfully",
            customer_id=customer_id,
            previous_balance=previous,
            repayment_amount=amount,
            new_balance=new_balance,
            payment_method=payload.payment_method,
        )
