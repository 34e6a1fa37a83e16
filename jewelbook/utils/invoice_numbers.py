import logging
import re
from datetime import date
from typing import Dict, Optional, Tuple

from sqlmodel import select

from jewelbook import config
from jewelbook.models import Invoice, InvoiceSequence, now_ts

logger = logging.getLogger("invoice_numbers")

SEQUENCE_START = 1000

# type -> (prefix, highest number before wrapping back to SEQUENCE_START)
LEDGER_SCHEMES = {
    "non_gst": ("INV-", 99999),
    "repayment": ("REP-", 99999),
}
GST_CEILING = 9999


def financial_year(today: date) -> str:
    """Indian financial year label, April 1 boundary: 2024-03-15 -> "23-24"."""
    start = today.year if today.month >= 4 else today.year - 1
    return f"{start % 100:02d}-{(start + 1) % 100:02d}"


def number_scope(invoice_type: str, today: Optional[date] = None) -> Tuple[str, str, int]:
    """
    (prefix, period, ceiling) for an invoice type.
    period is the financial year for GST and "" for the un-scoped series.
    """
    if invoice_type == "gst":
        fy = financial_year(today or date.today())
        return f"{config.GST_PREFIX}/{fy}-", fy, GST_CEILING
    if invoice_type in LEDGER_SCHEMES:
        prefix, ceiling = LEDGER_SCHEMES[invoice_type]
        return prefix, "", ceiling
    raise ValueError(f"Unknown invoice type: {invoice_type}")


def parse_sequence(number: str, prefix: str, ceiling: int) -> Optional[int]:
    """Numeric tail of an invoice number in this scope, or None for foreign/legacy formats."""
    if not number or not number.startswith(prefix):
        return None
    tail = number[len(prefix):]
    if not tail.isdigit() or len(tail) > len(str(ceiling)):
        return None
    value = int(tail)
    return value if value >= SEQUENCE_START else None


def _following(current: Optional[int], ceiling: int) -> int:
    nxt = current + 1 if current else SEQUENCE_START
    if nxt > ceiling:
        nxt = SEQUENCE_START
    return nxt


def max_existing(session, invoice_type: str, prefix: str, ceiling: int) -> Optional[int]:
    numbers = session.exec(
        select(Invoice.invoice_number).where(
            Invoice.type == invoice_type,
            Invoice.invoice_number.startswith(prefix),
        )
    ).all()
    values = [v for v in (parse_sequence(n, prefix, ceiling) for n in numbers) if v is not None]
    return max(values) if values else None


def _sequence_row(session, invoice_type: str, period: str, lock: bool = False):
    stmt = select(InvoiceSequence).where(
        InvoiceSequence.scope == invoice_type,
        InvoiceSequence.period == period,
    )
    if lock:
        stmt = stmt.with_for_update()
    return session.exec(stmt).first()


def next_invoice_number(session, invoice_type: str, today: Optional[date] = None) -> str:
    """
    Preview of the number the next invoice of this type would get.
    Read only: nothing is reserved.
    """
    prefix, period, ceiling = number_scope(invoice_type, today)
    seq = _sequence_row(session, invoice_type, period)
    current = seq.last_value if seq else max_existing(session, invoice_type, prefix, ceiling)
    return f"{prefix}{_following(current, ceiling)}"


def allocate_invoice_number(session, invoice_type: str, today: Optional[date] = None) -> str:
    """
    Reserve the next number inside the caller's transaction.
    The counter row is locked until that transaction commits or rolls back,
    and is seeded from existing invoices the first time a scope is used.
    """
    prefix, period, ceiling = number_scope(invoice_type, today)
    seq = _sequence_row(session, invoice_type, period, lock=True)
    if seq is None:
        seeded = max_existing(session, invoice_type, prefix, ceiling) or 0
        seq = InvoiceSequence(scope=invoice_type, period=period, last_value=seeded)
        logger.info("Seeding %s sequence (period=%r) at %s", invoice_type, period, seeded)

    value = _following(seq.last_value, ceiling)
    number = f"{prefix}{value}"
    if seq.last_value and value == SEQUENCE_START:
        logger.warning("%s sequence wrapped back to %s", invoice_type, SEQUENCE_START)
        taken = session.exec(select(Invoice.id).where(Invoice.invoice_number == number)).first()
        if taken is not None:
            # the insert will hit the unique constraint and roll this counter back with it
            logger.error(
                "%s already exists after wrap; %s counter (period=%r) must be moved past it by hand",
                number, invoice_type, period,
            )
    seq.last_value = value
    seq.updated_at = now_ts()
    session.add(seq)
    session.flush()
    return number


_GST_PERIOD = re.compile(r"^(?P<fy>\d{2}-\d{2})-\d+$")


def seed_invoice_sequences(session) -> Dict[Tuple[str, str], int]:
    """
    Bring every counter row up to the highest number already issued.
    GST rows are seeded per financial year found in existing numbers.
    Returns the highest issued number found per (scope, period).
    """
    targets: Dict[Tuple[str, str], int] = {}

    for invoice_type, (prefix, ceiling) in LEDGER_SCHEMES.items():
        top = max_existing(session, invoice_type, prefix, ceiling)
        if top is not None:
            targets[(invoice_type, "")] = top

    gst_root = f"{config.GST_PREFIX}/"
    gst_numbers = session.exec(
        select(Invoice.invoice_number).where(
            Invoice.type == "gst",
            Invoice.invoice_number.startswith(gst_root),
        )
    ).all()
    for number in gst_numbers:
        m = _GST_PERIOD.match(number[len(gst_root):])
        if not m:
            continue
        fy = m.group("fy")
        value = parse_sequence(number, f"{gst_root}{fy}-", GST_CEILING)
        if value is not None and value > targets.get(("gst", fy), 0):
            targets[("gst", fy)] = value

    for (scope, period), top in targets.items():
        seq = _sequence_row(session, scope, period, lock=True)
        if seq is None:
            seq = InvoiceSequence(scope=scope, period=period, last_value=top)
        elif seq.last_value >= top:
            continue
        else:
            seq.last_value = top
        seq.updated_at = now_ts()
        session.add(seq)

    session.commit()
    return targets
