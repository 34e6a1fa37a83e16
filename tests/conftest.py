import os
import tempfile
from pathlib import Path

# must be set before jewelbook.config is imported
_TMP_DIR = Path(tempfile.mkdtemp(prefix="jewelbook-tests-"))
os.environ["JEWELBOOK_DB_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["JEWELBOOK_SECRET_KEY"] = "test-secret"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from jewelbook.auth import create_token  # noqa: E402
from jewelbook.db import engine, get_session  # noqa: E402
from jewelbook.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def session():
    with get_session() as s:
        yield s


@pytest.fixture
def client():
    # no context manager: skips the startup hook (tables come from fresh_db)
    c = TestClient(app)
    c.headers.update({"Authorization": f"Bearer {create_token(1, 'admin', 'admin')}"})
    return c


@pytest.fixture
def make_customer(client):
    def _make(name="Rajesh Kumar", **fields):
        r = client.post("/customers/", json={"name": name, **fields})
        assert r.status_code == 201, r.text
        return r.json()["id"]
    return _make


@pytest.fixture
def ledger(client):
    def _ledger(customer_id):
        r = client.get(f"/customers/{customer_id}")
        assert r.status_code == 200, r.text
        return r.json()["ledger_balance"]
    return _ledger


def ring(**over):
    line = {"item_name": "Gold Ring 22K", "stamp": "22k", "gross_weight": 10, "rate": 50}
    line.update(over)
    return line


def invoice_body(customer_id, total, paid=0.0, type="non_gst", items=None, **extra):
    body = {
        "customer_id": customer_id,
        "type": type,
        "items": [ring()] if items is None else items,
        "subtotal": total,
        "total_amount": total,
        "paid_amount": paid,
        "payment_method": "cash",
    }
    body.update(extra)
    return body
