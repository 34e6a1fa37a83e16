# jewelbook/routers/dashboard.py
from fastapi import APIRouter
from sqlalchemy import func, or_
from sqlmodel import select

from jewelbook.db import get_session
from jewelbook.models import Customer, Invoice, DashboardStats, today_ymd
from jewelbook.utils.currency import round_currency

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
def stats():
    with get_session() as session:
        regular_customers = session.exec(
            select(func.count(Customer.id)).where(
                or_(Customer.is_gst == False, Customer.is_gst.is_(None))  # noqa: E712
            )
        ).one()
        total_invoices = session.exec(select(func.count(Invoice.id))).one()
        # same aggregate as the customers list "total_pending", summed over everyone
        pending = session.exec(
            select(func.coalesce(func.sum(Invoice.balance_amount), 0)).where(Invoice.balance_amount > 0)
        ).one()
        today_sales = session.exec(
            select(func.coalesce(func.sum(Invoice.total_amount), 0)).where(
                Invoice.invoice_date == today_ymd()
            )
        ).one()

        return DashboardStats(
            totalCustomers=int(regular_customers or 0),
            totalInvoices=int(total_invoices or 0),
            pendingAmount=round_currency(pending or 0),
            todaySales=round_currency(today_sales or 0),
        )
