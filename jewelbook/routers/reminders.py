# jewelbook/routers/reminders.py
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Response
from sqlmodel import select

from jewelbook.db import get_session
from jewelbook.models import (
    Customer, Invoice, Reminder,
    ReminderCreate, ReminderOut,
    now_ts,
)
from jewelbook.utils.currency import round_currency

router = APIRouter()


def _parse_ymd(date_str: str) -> str:
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date().isoformat()
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="reminder_date must be YYYY-MM-DD")


def _pending_query():
    return (
        select(Reminder, Customer.name, Customer.mobile, Invoice.invoice_number)
        .outerjoin(Customer, Reminder.customer_id == Customer.id)
        .outerjoin(Invoice, Reminder.invoice_id == Invoice.id)
        .where(Reminder.status == "pending")
    )


def _to_out(r: Reminder, customer_name, mobile, invoice_number) -> ReminderOut:
    return ReminderOut(
        **r.model_dump(),
        customer_name=customer_name,
        mobile=mobile,
        invoice_number=invoice_number,
    )


@router.get("/", response_model=List[ReminderOut])
def list_reminders(customer_id: Optional[int] = Query(None)) -> List[ReminderOut]:
    """Pending promises, soonest first."""
    with get_session() as session:
        stmt = _pending_query()
        if customer_id is not None:
            stmt = stmt.where(Reminder.customer_id == customer_id)
        stmt = stmt.order_by(Reminder.reminder_date.asc(), Reminder.id.asc())
        return [_to_out(*row) for row in session.exec(stmt).all()]


@router.get("/today", response_model=List[ReminderOut])
def todays_reminders() -> List[ReminderOut]:
    today = date.today().isoformat()
    with get_session() as session:
        stmt = _pending_query().where(Reminder.reminder_date == today).order_by(Reminder.id.asc())
        return [_to_out(*row) for row in session.exec(stmt).all()]


@router.post("/", response_model=ReminderOut, status_code=201)
def create_reminder(payload: ReminderCreate) -> ReminderOut:
    amount = round_currency(payload.amount_promised)
    if amount <= 0:
        raise HTTPException(status_code=400, detail="amount_promised must be > 0")
    reminder_date = _parse_ymd(payload.reminder_date)

    with get_session() as session:
        customer = session.get(Customer, payload.customer_id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")

        invoice_number = None
        if payload.invoice_id is not None:
            inv = session.get(Invoice, payload.invoice_id)
            if not inv:
                raise HTTPException(status_code=404, detail="Invoice not found")
            if inv.customer_id != customer.id:
                raise HTTPException(status_code=400, detail="Invoice belongs to a different customer")
            invoice_number = inv.invoice_number

        row = Reminder(
            customer_id=customer.id,
            invoice_id=payload.invoice_id,
            reminder_date=reminder_date,
            amount_promised=amount,
            notes=payload.notes,
        )
        session.add(row)
        session.commit()
        session.refresh(row)
        return _to_out(row, customer.name, customer.mobile, invoice_number)


@router.put("/{reminder_id}/complete", response_model=ReminderOut)
def complete_reminder(reminder_id: int) -> ReminderOut:
    with get_session() as session:
        row = session.get(Reminder, reminder_id)
        if not row:
            raise HTTPException(status_code=404, detail="Reminder not found")
        row.status = "completed"
        row.updated_at = now_ts()
        session.add(row)
        session.commit()
        session.refresh(row)

        customer = session.get(Customer, row.customer_id)
        inv = session.get(Invoice, row.invoice_id) if row.invoice_id else None
        return _to_out(
            row,
            customer.name if customer else None,
            customer.mobile if customer else None,
            inv.invoice_number if inv else None,
        )


@router.delete("/{reminder_id}", status_code=204)
def delete_reminder(reminder_id: int) -> Response:
    with get_session() as session:
        row = session.get(Reminder, reminder_id)
        if not row:
            raise HTTPException(status_code=404, detail="Reminder not found")
        session.delete(row)
        session.commit()
        return Response(status_code=204)
