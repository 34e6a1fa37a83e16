"""
One-off: bring the invoice number counters up to date with invoices that were
numbered before the counter table existed (or imported from another system).
Safe to run more than once; counters only ever move forward.
"""
from jewelbook import config
from jewelbook.db import get_session, init_db
from jewelbook.utils.invoice_numbers import seed_invoice_sequences


def main():
    print(f"Database: {config.DB_URL}")
    init_db()

    with get_session() as session:
        seeded = seed_invoice_sequences(session)

    if not seeded:
        print("✅ No numbered invoices found. Nothing to do.")
        return

    for (scope, period), last_value in sorted(seeded.items()):
        label = f"{scope} {period}".strip()
        print(f"➕ {label}: last issued {last_value}")
    print("✅ Invoice sequences seeded.")


if __name__ == "__main__":
    main()
