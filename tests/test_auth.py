from fastapi.testclient import TestClient

from jewelbook.main import app


def test_token_required():
    bare = TestClient(app)
    r = bare.get("/customers/")
    assert r.status_code == 401
    assert r.json()["detail"] == "Access token required"


def test_bad_token_rejected():
    bare = TestClient(app)
    r = bare.get("/customers/", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 403
    assert r.json()["detail"] == "Invalid token"


def test_open_routes():
    bare = TestClient(app)
    assert bare.get("/health").json() == {"status": "OK"}
    assert bare.get("/").status_code == 200


def test_login_with_default_admin():
    # entering the client runs startup, which seeds the admin user
    with TestClient(app) as c:
        r = c.post("/auth/login", json={"username": "admin", "password": "admin123"})
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["user"]["username"] == "admin"
        assert body["user"]["role"] == "admin"

        headers = {"Authorization": f"Bearer {body['token']}"}
        assert c.get("/customers/", headers=headers).status_code == 200
        assert c.get("/auth/me", headers=headers).json()["username"] == "admin"


def test_login_with_wrong_password():
    with TestClient(app) as c:
        r = c.post("/auth/login", json={"username": "admin", "password": "nope"})
        assert r.status_code == 401
        r = c.post("/auth/login", json={"username": "ghost", "password": "admin123"})
        assert r.status_code == 401
