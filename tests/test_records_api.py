#!/usr/bin/env python3
"""
End-to-end tests for the record endpoints through FastAPI.
"""

import base64
import json
import os
from datetime import datetime
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from secnotes.main import app
from secnotes.models.schema import Record
from secnotes.shared.db import engine

client = TestClient(app)

ALICE = "alice"
BOB = "bob"


@pytest.fixture(scope="module")
def alice_key():
    return Ed25519PrivateKey.from_private_bytes(b"alice_key_32_bytes_for_tests_ok!")


@pytest.fixture(scope="module")
def bob_key():
    return Ed25519PrivateKey.from_private_bytes(b"bob_key_32_bytes_for_tests_only!")


def sign_payload(payload_dict, private_key, username):
    """Sign a payload for authentication."""
    payload_json = json.dumps(payload_dict, separators=(",", ":"))
    signature_bytes = private_key.sign(payload_json.encode())
    signature_b64 = base64.b64encode(signature_bytes).decode()

    return {
        "payload": payload_json,
        "signature": signature_b64,
        "username": username,
    }


def register(username, private_key):
    public_key_bytes = private_key.public_key().public_bytes_raw()
    register_payload = {
        "username": username,
        "public_key": base64.b64encode(public_key_bytes).decode(),
    }
    return client.post(
        "/auth/register", json=sign_payload(register_payload, private_key, username)
    )


@pytest.fixture(scope="module", autouse=True)
def registered_users(alice_key, bob_key):
    assert register(ALICE, alice_key).status_code == 200
    assert register(BOB, bob_key).status_code == 200


def call(path, payload, private_key, username):
    body = {"username": username, **payload}
    return client.post(path, json=sign_payload(body, private_key, username))


def create(private_key, username, title="Buy milk", sensitive_text="2% organic"):
    response = call(
        "/records/create",
        {"title": title, "sensitive_text": sensitive_text},
        private_key,
        username,
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestRegistration:
    def test_duplicate_username(self, alice_key):
        response = register(ALICE, alice_key)
        assert response.status_code == 403

    def test_invalid_public_key(self, alice_key):
        payload = {"username": "broken", "public_key": "not-a-key"}
        response = client.post(
            "/auth/register", json=sign_payload(payload, alice_key, payload["username"])
        )
        assert response.status_code == 400


class TestRecordFlow:
    def test_create_and_get(self, alice_key):
        created = create(alice_key, ALICE)
        assert created["title"] == "Buy milk"
        assert created["sensitive_text"] == "2% organic"
        assert created["owner_id"] == ALICE
        assert "sensitive_envelope" not in created

        with Session(engine) as session:
            row = session.exec(select(Record).where(Record.id == created["id"])).one()
        assert row.sensitive_envelope != "2% organic"

        response = call("/records/get", {"id": created["id"]}, alice_key, ALICE)
        assert response.status_code == 200
        assert response.json()["sensitive_text"] == "2% organic"

    def test_update_sensitive_text(self, alice_key):
        created = create(alice_key, ALICE)

        response = call(
            "/records/update",
            {"id": created["id"], "sensitive_text": "oat milk"},
            alice_key,
            ALICE,
        )
        assert response.status_code == 200

        fetched = call("/records/get", {"id": created["id"]}, alice_key, ALICE).json()
        assert fetched["sensitive_text"] == "oat milk"
        assert fetched["title"] == "Buy milk"
        assert datetime.fromisoformat(fetched["updated_at"]) > datetime.fromisoformat(
            created["updated_at"]
        )

    def test_update_completed_only(self, alice_key):
        created = create(alice_key, ALICE)

        response = call(
            "/records/update", {"id": created["id"], "completed": True}, alice_key, ALICE
        )
        assert response.status_code == 200
        updated = response.json()
        assert updated["completed"] is True
        assert updated["sensitive_text"] == "2% organic"
        assert updated["title"] == "Buy milk"

    def test_update_null_title_rejected(self, alice_key):
        created = create(alice_key, ALICE)

        response = call(
            "/records/update", {"id": created["id"], "title": None}, alice_key, ALICE
        )
        assert response.status_code == 400

    def test_delete(self, alice_key):
        created = create(alice_key, ALICE)

        response = call("/records/delete", {"id": created["id"]}, alice_key, ALICE)
        assert response.status_code == 200

        response = call("/records/get", {"id": created["id"]}, alice_key, ALICE)
        assert response.status_code == 404

        response = call("/records/delete", {"id": created["id"]}, alice_key, ALICE)
        assert response.status_code == 404

    def test_list_newest_first(self, bob_key):
        titles = [f"list note {i}" for i in range(3)]
        for title in titles:
            create(bob_key, BOB, title=title, sensitive_text=title)

        response = call("/records/list", {"limit": 3, "offset": 0}, bob_key, BOB)
        assert response.status_code == 200
        records = response.json()["records"]
        assert [r["title"] for r in records] == list(reversed(titles))
        assert [r["sensitive_text"] for r in records] == list(reversed(titles))

    @pytest.mark.parametrize(("limit", "offset"), [(0, 0), (101, 0), (10, -1)])
    def test_list_rejects_bad_paging(self, alice_key, limit, offset):
        response = call("/records/list", {"limit": limit, "offset": offset}, alice_key, ALICE)
        assert response.status_code == 400


class TestOwnership:
    def test_foreign_record_is_not_found(self, alice_key, bob_key):
        created = create(alice_key, ALICE)

        for path, extra in [
            ("/records/get", {}),
            ("/records/update", {"completed": True}),
            ("/records/delete", {}),
        ]:
            foreign = call(path, {"id": created["id"], **extra}, bob_key, BOB)
            missing = call(path, {"id": 10**9, **extra}, bob_key, BOB)
            assert foreign.status_code == 404
            assert foreign.json() == missing.json()

        listed = call("/records/list", {"limit": 100}, bob_key, BOB).json()["records"]
        assert created["id"] not in [r["id"] for r in listed]

        still_there = call("/records/get", {"id": created["id"]}, alice_key, ALICE)
        assert still_there.json()["completed"] is False

    def test_payload_identity_must_match_signer(self, bob_key):
        body = {"username": ALICE, "title": "spoofed", "sensitive_text": ""}
        response = client.post("/records/create", json=sign_payload(body, bob_key, BOB))
        assert response.status_code == 403

    def test_signature_from_wrong_key(self, bob_key):
        body = {"username": ALICE, "limit": 10}
        response = client.post("/records/list", json=sign_payload(body, bob_key, ALICE))
        assert response.status_code == 400

    def test_unknown_user(self, alice_key):
        stranger = "stranger"
        response = call("/records/list", {}, alice_key, stranger)
        assert response.status_code == 404


class TestSanitization:
    def test_title_trimmed_and_control_chars_removed(self, alice_key):
        created = create(
            alice_key, ALICE, title="  Buy\x07 milk  ", sensitive_text="line one\nline\x00 two"
        )
        assert created["title"] == "Buy milk"
        assert created["sensitive_text"] == "line one\nline two"

    def test_blank_title_rejected(self, alice_key):
        response = call(
            "/records/create", {"title": "   ", "sensitive_text": ""}, alice_key, ALICE
        )
        assert response.status_code == 400

    def test_oversized_sensitive_text_rejected(self, alice_key):
        response = call(
            "/records/create", {"title": "ok", "sensitive_text": "s" * 2001}, alice_key, ALICE
        )
        assert response.status_code == 400

    def test_unknown_field_rejected(self, alice_key):
        response = call(
            "/records/create",
            {"title": "ok", "sensitive_text": "", "sensitive_envelope": "AAAA"},
            alice_key,
            ALICE,
        )
        assert response.status_code == 400


def test_tampered_record_is_server_error(alice_key):
    created = create(alice_key, ALICE, sensitive_text="will be tampered")

    with Session(engine) as session:
        row = session.exec(select(Record).where(Record.id == created["id"])).one()
        raw = bytearray(base64.b64decode(row.sensitive_envelope))
        raw[-1] ^= 0x01
        row.sensitive_envelope = base64.b64encode(bytes(raw)).decode()
        session.add(row)
        session.commit()

    response = call("/records/get", {"id": created["id"]}, alice_key, ALICE)
    assert response.status_code == 500
    assert "will be tampered" not in response.text
    assert response.json()["detail"] == "Internal server error"

    call("/records/delete", {"id": created["id"]}, alice_key, ALICE)


@pytest.mark.parametrize("path", ["/records/get", "/records/update", "/records/delete"])
@pytest.mark.parametrize("record_id", [10**30, 2**63, 0])
def test_unbindable_id_rejected(alice_key, path, record_id):
    response = call(path, {"id": record_id}, alice_key, ALICE)
    assert response.status_code == 400


@pytest.mark.parametrize(
    "fields",
    [
        {"title": "lone \ud800 surrogate", "sensitive_text": ""},
        {"title": "ok", "sensitive_text": "lone \udfff surrogate"},
    ],
)
def test_unencodable_text_rejected(alice_key, fields):
    response = call("/records/create", fields, alice_key, ALICE)
    assert response.status_code == 400


def test_database_is_session_scoped():
    session_dir = Path(os.environ["SECNOTES_CONFIG"]).parent
    assert Path(engine.url.database).parent == session_dir
