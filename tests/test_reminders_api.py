from datetime import date

from conftest import invoice_body


def test_reminder_lifecycle(client, make_customer):
    cid = make_customer(mobile="9876543210")
    inv = client.post("/invoices/", json=invoice_body(cid, total=500)).json()

    r = client.post("/reminders/", json={
        "customer_id": cid,
        "invoice_id": inv["id"],
        "reminder_date": "2030-01-15",
        "amount_promised": 250,
        "notes": "after Diwali",
    })
    assert r.status_code == 201, r.text
    rem = r.json()
    assert rem["status"] == "pending"
    assert rem["customer_name"] == "Rajesh Kumar"
    assert rem["mobile"] == "9876543210"
    assert rem["invoice_number"] == inv["invoice_number"]

    assert [x["id"] for x in client.get("/reminders/").json()] == [rem["id"]]
    assert [x["id"] for x in client.get("/reminders/", params={"customer_id": cid}).json()] == [rem["id"]]

    done = client.put(f"/reminders/{rem['id']}/complete").json()
    assert done["status"] == "completed"
    assert client.get("/reminders/").json() == []

    assert client.delete(f"/reminders/{rem['id']}").status_code == 204
    assert client.put(f"/reminders/{rem['id']}/complete").status_code == 404


def test_pending_reminders_sorted_by_date(client, make_customer):
    cid = make_customer()
    for day in ("2030-03-01", "2030-01-01", "2030-02-01"):
        client.post("/reminders/", json={"customer_id": cid, "reminder_date": day, "amount_promised": 10})

    dates = [x["reminder_date"] for x in client.get("/reminders/").json()]
    assert dates == ["2030-01-01", "2030-02-01", "2030-03-01"]


def test_todays_reminders(client, make_customer):
    cid = make_customer()
    today = date.today().isoformat()
    client.post("/reminders/", json={"customer_id": cid, "reminder_date": today, "amount_promised": 100})
    client.post("/reminders/", json={"customer_id": cid, "reminder_date": "2030-01-01", "amount_promised": 100})

    rows = client.get("/reminders/today").json()
    assert [x["reminder_date"] for x in rows] == [today]


def test_reminder_validation(client, make_customer):
    a = make_customer("A")
    b = make_customer("B")
    inv_b = client.post("/invoices/", json=invoice_body(b, total=100)).json()

    def post(**over):
        body = {"customer_id": a, "reminder_date": "2030-01-01", "amount_promised": 100}
        body.update(over)
        return client.post("/reminders/", json=body).status_code

    assert post(amount_promised=0) == 400
    assert post(reminder_date="01-01-2030") == 400
    assert post(customer_id=9999) == 404
    assert post(invoice_id=9999) == 404
    assert post(invoice_id=inv_b["id"]) == 400


def test_reminders_go_with_their_customer(client, make_customer):
    cid = make_customer()
    client.post("/reminders/", json={"customer_id": cid, "reminder_date": "2030-01-01", "amount_promised": 10})
    assert client.delete(f"/customers/{cid}").status_code == 204
    assert client.get("/reminders/").json() == []
