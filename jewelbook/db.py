# jewelbook/db.py
import logging
from contextlib import contextmanager

from sqlmodel import create_engine, Session, SQLModel
from sqlalchemy import event, text

from jewelbook import config
from jewelbook import models  # noqa: F401  (registers tables on SQLModel.metadata)

logger = logging.getLogger("db")

_is_sqlite = config.DB_URL.startswith("sqlite")

engine = create_engine(
    config.DB_URL,
    echo=False,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)


if _is_sqlite:
    @event.listens_for(engine, "connect")
    def _sqlite_pragmas(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


# columns added after the first release; older SQLite files get them via ALTER TABLE
LEGACY_COLUMNS = {
    "invoice": [
        ("payment_method", "TEXT DEFAULT 'cash'"),
        ("payment_status", "TEXT DEFAULT 'pending'"),
        ("old_item_type", "TEXT"),
        ("old_item_value", "NUMERIC(12, 2) DEFAULT 0"),
        ("previous_balance", "NUMERIC(12, 2) DEFAULT 0"),
        ("current_outstanding", "NUMERIC(12, 2) DEFAULT 0"),
        ("notes", "TEXT"),
    ],
    "customer": [
        ("is_gst", "BOOLEAN NOT NULL DEFAULT 0"),
    ],
}


def migrate_db():
    if not _is_sqlite:
        return
    with Session(engine) as session:
        for table, columns in LEGACY_COLUMNS.items():
            cols = session.exec(text(f"PRAGMA table_info({table})")).all()
            col_names = {c[1] for c in cols}
            for name, ddl in columns:
                if name not in col_names:
                    session.exec(text(f"ALTER TABLE {table} ADD COLUMN {name} {ddl}"))
                    logger.info("Added column %s.%s", table, name)
        session.commit()


def init_db():
    SQLModel.metadata.create_all(engine)
    migrate_db()


@contextmanager
def get_session():
    with Session(engine) as session:
        yield session
