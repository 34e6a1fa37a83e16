# jewelbook/models.py
from typing import Optional, List
from datetime import datetime, date
from pydantic import ConfigDict
from sqlalchemy import Numeric, UniqueConstraint
from sqlmodel import SQLModel, Field, Column, String


def now_ts() -> str:
    return datetime.now().isoformat(timespec="seconds")


def today_ymd() -> str:
    return date.today().isoformat()


def money_column(nullable: bool = False) -> Column:
    # fixed-point on disk, plain floats in Python
    return Column(Numeric(12, 2, asdecimal=False), nullable=nullable, default=0)


# ---------- DB Tables ----------
class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    password_hash: str
    role: str = "admin"
    is_active: bool = True
    created_at: str = Field(default_factory=now_ts)


class Customer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    mobile: Optional[str] = Field(default=None, index=True)
    alt_mobile: Optional[str] = None
    email: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = "India"
    image_url: Optional[str] = None
    # +ve => customer owes the shop, -ve => shop holds customer credit
    ledger_balance: float = Field(default=0.0, sa_column=money_column())
    is_gst: bool = Field(default=False, index=True)
    created_at: str = Field(default_factory=now_ts)
    updated_at: str = Field(default_factory=now_ts)


class ItemGroup(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    created_at: str = Field(default_factory=now_ts)
    updated_at: str = Field(default_factory=now_ts)


class Item(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    group_id: Optional[int] = Field(default=None, foreign_key="itemgroup.id", index=True)
    price: float = Field(default=0.0, sa_column=money_column())
    description: Optional[str] = None
    created_at: str = Field(default_factory=now_ts)
    updated_at: str = Field(default_factory=now_ts)


class Invoice(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_number: str = Field(index=True, unique=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)
    type: str = Field(default="non_gst", index=True)   # "gst" | "non_gst" | "repayment"
    invoice_date: str = Field(default_factory=today_ymd, sa_column=Column(String(10)))
    subtotal: float = Field(default=0.0, sa_column=money_column())
    discount_type: str = "none"                         # "none" | "percentage" | "fixed"
    discount_value: float = Field(default=0.0, sa_column=money_column())
    discount_amount: float = Field(default=0.0, sa_column=money_column())
    gst_amount: float = Field(default=0.0, sa_column=money_column())
    total_amount: float = Field(default=0.0, sa_column=money_column())
    paid_amount: float = Field(default=0.0, sa_column=money_column())
    balance_amount: float = Field(default=0.0, sa_column=money_column())
    payment_method: str = "cash"                        # "cash" | "upi" | "cheque"
    payment_status: str = Field(default="pending", index=True)
    status: str = "pending"                             # mirrors payment_status
    old_item_type: Optional[str] = None                 # "old_gold" | "old_silver"
    old_item_value: float = Field(default=0.0, sa_column=money_column())
    # customer ledger right before / right after this invoice was posted
    previous_balance: float = Field(default=0.0, sa_column=money_column())
    current_outstanding: float = Field(default=0.0, sa_column=money_column())
    notes: Optional[str] = None
    created_at: str = Field(default_factory=now_ts)
    updated_at: str = Field(default_factory=now_ts)


class InvoiceItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_id: int = Field(foreign_key="invoice.id", index=True, ondelete="CASCADE")
    item_id: Optional[int] = Field(default=None, foreign_key="item.id", ondelete="SET NULL")  # null for repayment lines
    item_name: str                      # snapshot, never re-read from Item
    stamp: Optional[str] = None         # purity, e.g. "22k"
    remarks: Optional[str] = None
    hsn: Optional[str] = None
    unit: str = "GM"
    pc: int = 1
    gross_weight: float = 0.0
    add_weight: float = 0.0             # polish
    making_charges: float = 0.0         # % of gross weight
    net_weight: float = 0.0
    rate: float = Field(default=0.0, sa_column=money_column())
    labour: float = Field(default=0.0, sa_column=money_column())
    discount: float = Field(default=0.0, sa_column=money_column())
    total: float = Field(default=0.0, sa_column=money_column())


class InvoiceSequence(SQLModel, table=True):
    """
    Last issued number per numbering scope.
    scope is the invoice type, period is the GST financial year ("" otherwise).
    """
    __table_args__ = (UniqueConstraint("scope", "period"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    scope: str
    period: str = ""
    last_value: int = 0
    updated_at: str = Field(default_factory=now_ts)


class Reminder(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(foreign_key="customer.id", index=True, ondelete="CASCADE")
    invoice_id: Optional[int] = Field(default=None, foreign_key="invoice.id", ondelete="SET NULL")
    reminder_date: str = Field(sa_column=Column(String(10), index=True))
    amount_promised: float = Field(default=0.0, sa_column=money_column())
    notes: Optional[str] = None
    status: str = Field(default="pending", index=True)   # "pending" | "completed"
    created_at: str = Field(default_factory=now_ts)
    updated_at: str = Field(default_factory=now_ts)


# ---------- Request base ----------
class NumbersIn(SQLModel):
    # JSON bodies may carry NaN / Infinity; amounts and weights must be finite
    model_config = ConfigDict(allow_inf_nan=False)


# ---------- Auth Schemas ----------
class LoginIn(SQLModel):
    username: str
    password: str


class UserOut(SQLModel):
    id: int
    username: str
    role: str


class LoginOut(SQLModel):
    token: str
    user: UserOut


# ---------- Customer Schemas ----------
class CustomerCreate(NumbersIn):
    name: str
    mobile: Optional[str] = None
    alt_mobile: Optional[str] = None
    email: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None
    image_url: Optional[str] = None
    ledger_balance: float = 0.0
    is_gst: bool = False


class CustomerUpdate(NumbersIn):
    name: Optional[str] = None
    mobile: Optional[str] = None
    alt_mobile: Optional[str] = None
    email: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None
    image_url: Optional[str] = None
    ledger_balance: Optional[float] = None
    is_gst: Optional[bool] = None


class CustomerOut(SQLModel):
    id: int
    name: str
    mobile: Optional[str] = None
    alt_mobile: Optional[str] = None
    email: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None
    image_url: Optional[str] = None
    is_gst: bool
    created_at: str
    updated_at: str
    # stored running balance, moved only by the ledger engine or explicit edits
    ledger_balance: float
    # derived: SUM(balance_amount > 0) over all invoices incl. GST; may differ from ledger_balance
    total_pending: float = 0.0
    total_invoices: int = 0


class RepaymentIn(NumbersIn):
    amount: float
    payment_method: str = "cash"
    notes: Optional[str] = None


class RepaymentOut(SQLModel):
    message: str
    customer_id: int
    previous_balance: float
    repayment_amount: float
    new_balance: float
    payment_method: str


# ---------- Inventory Schemas ----------
class ItemGroupIn(SQLModel):
    name: str
    description: Optional[str] = None


class ItemGroupUpdate(SQLModel):
    name: Optional[str] = None
    description: Optional[str] = None


class ItemGroupOut(SQLModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: str
    updated_at: str


# ---------- Invoice Schemas ----------
class InvoiceItemIn(NumbersIn):
    item_id: Optional[int] = None
    item_name: str
    stamp: Optional[str] = None
    remarks: Optional[str] = None
    hsn: Optional[str] = None
    unit: str = "GM"
    pc: int = 1
    gross_weight: float = 0.0
    add_weight: float = 0.0
    making_charges: float = 0.0
    rate: float = 0.0
    labour: float = 0.0
    discount: float = 0.0
    total: float = 0.0          # only kept as-is for repayment lines


class InvoiceItemOut(SQLModel):
    id: int
    item_id: Optional[int] = None
    item_name: str
    stamp: Optional[str] = None
    remarks: Optional[str] = None
    hsn: Optional[str] = None
    unit: str
    pc: int
    gross_weight: float
    add_weight: float
    making_charges: float
    net_weight: float
    rate: float
    labour: float
    discount: float
    total: float


class InvoiceIn(NumbersIn):
    """Body for both create and full-replace update."""
    customer_id: int
    type: str = "non_gst"
    invoice_date: Optional[str] = None      # "YYYY-MM-DD", defaults to today
    items: List[InvoiceItemIn] = []
    subtotal: float = 0.0
    discount_type: str = "none"
    discount_value: float = 0.0
    discount_amount: float = 0.0
    gst_amount: float = 0.0
    total_amount: float
    paid_amount: float = 0.0
    payment_method: str = "cash"
    payment_status: Optional[str] = None    # explicit override, e.g. "credit"
    old_item_type: Optional[str] = None
    old_item_value: Optional[float] = None
    notes: Optional[str] = None
    # what the form showed; recomputed server side and only compared
    previous_balance: Optional[float] = None
    current_outstanding: Optional[float] = None
    new_ledger_balance: Optional[float] = None


class InvoiceOut(SQLModel):
    id: int
    invoice_number: str
    customer_id: int
    customer_name: Optional[str] = None
    type: str
    invoice_date: str
    subtotal: float
    discount_type: str
    discount_value: float
    discount_amount: float
    gst_amount: float
    total_amount: float
    paid_amount: float
    balance_amount: float
    payment_method: str
    payment_status: str
    status: str
    old_item_type: Optional[str] = None
    old_item_value: float
    previous_balance: float
    current_outstanding: float
    notes: Optional[str] = None
    created_at: str
    updated_at: str


class InvoiceDetailOut(InvoiceOut):
    # customer contact as of now, not as of invoice time
    mobile: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    items: List[InvoiceItemOut] = []


class InvoiceWriteOut(SQLModel):
    id: int
    invoice_number: str
    message: str
    payment_status: str
    new_ledger_balance: float


class InvoiceDeleteOut(SQLModel):
    message: str
    customer_id: int
    updated_balance: float


class NextNumberOut(SQLModel):
    type: str
    invoice_number: str


# ---------- Reminder Schemas ----------
class ReminderCreate(NumbersIn):
    customer_id: int
    invoice_id: Optional[int] = None
    reminder_date: str                  # "YYYY-MM-DD"
    amount_promised: float
    notes: Optional[str] = None


class ReminderOut(SQLModel):
    id: int
    customer_id: int
    customer_name: Optional[str] = None
    mobile: Optional[str] = None
    invoice_id: Optional[int] = None
    invoice_number: Optional[str] = None
    reminder_date: str
    amount_promised: float
    notes: Optional[str] = None
    status: str
    created_at: str
    updated_at: str


# ---------- Dashboard ----------
class DashboardStats(SQLModel):
    totalCustomers: int
    totalInvoices: int
    pendingAmount: float
    todaySales: float
