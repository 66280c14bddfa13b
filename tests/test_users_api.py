"""
API tests for profile, interface language and device registration.
"""
from bson import ObjectId

from courier.config import DEFAULT_LOCALE, SUPPORTED_LOCALES


def test_me_returns_own_profile(clients, users):
    resp = clients["alice"].get("/users/me")
    assert resp.status_code == 200
    profile = resp.json()
    assert profile["id"] == users["alice"]
    assert profile["username"] == "alice"
    assert profile["email"] == "alice@mailbox.org"
    assert profile["locale"] == "en"
    assert "password" not in profile


def test_me_requires_session(anonymous):
    assert anonymous.get("/users/me").status_code == 403


def test_locales():
    from fastapi.testclient import TestClient

    from courier.main import app

    resp = TestClient(app).get("/users/locales")
    assert resp.status_code == 200
    assert resp.json() == {"locales": SUPPORTED_LOCALES, "default": DEFAULT_LOCALE}


def test_update_locale(clients, users, db, run):
    resp = clients["bob"].put("/users/me/locale", json={"locale": "fi"})
    assert resp.status_code == 200
    assert resp.json()["locale"] == "fi"
    stored = run(db["users"].find_one({"_id": ObjectId(users["bob"])}))
    assert stored["locale"] == "fi"


def test_update_locale_rejects_unknown_language(clients, users, db, run):
    resp = clients["bob"].put("/users/me/locale", json={"locale": "xx"})
    assert resp.status_code == 400
    stored = run(db["users"].find_one({"_id": ObjectId(users["bob"])}))
    assert stored["locale"] == "en"


def test_register_device(clients, users, db, run):
    resp = clients["carol"].post("/devices/register", json={"platform": "fcm", "token": "carol-phone"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "device": {"platform": "fcm", "token": "carol-phone"}}
    device = run(db["devices"].find_one({"userId": users["carol"]}))
    assert device["token"] == "carol-phone"


def test_register_device_validates_platform(clients):
    resp = clients["carol"].post("/devices/register", json={"platform": "pager", "token": "x"})
    assert resp.status_code == 422
