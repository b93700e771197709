"""Tests for the REST API."""

import httpx
import pytest
from fastapi.testclient import TestClient

from nsreg.config import RegistryConfig
from nsreg.core.identity import Keypair
from nsreg.oracle.github import GitHubOracle
from nsreg.registry.authorizer import OracleAuthorizer
from nsreg.registry.operations import Registry
from nsreg.registry.store import InMemoryAccountStore
from nsreg.registry.transaction import Transaction
from web.backend.app.main import app
from web.backend.app.middleware.registry import get_oracle, get_registry

AUTHOR = Keypair.generate()
ORACLE = Keypair.generate()


@pytest.fixture
def reg():
    registry = Registry(InMemoryAccountStore(), OracleAuthorizer(ORACLE.identity))

    def github(request):
        return httpx.Response(200, json={"bio": f"nsreg wallet: {AUTHOR.identity}"})

    oracle = GitHubOracle(
        ORACLE,
        registry,
        RegistryConfig(oracle_identity=str(ORACLE.identity)),
        transport=httpx.MockTransport(github),
    )
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_oracle] = lambda: oracle
    yield registry
    app.dependency_overrides.clear()


@pytest.fixture
def client(reg):
    return TestClient(app)


def _publish_tx(reg, scope="vovacodes", name="react-sunbeam"):
    _, bump = reg.package_address(scope, name)
    return Transaction.publish_package(AUTHOR.identity, scope, name, bump).sign(AUTHOR)


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_publish_and_lookup(client, reg):
    resp = client.post("/api/transactions", json=_publish_tx(reg).to_dict())
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["package"]["package_id"] == "@vovacodes/react-sunbeam"

    lookup = client.get("/api/packages/@vovacodes/react-sunbeam")
    assert lookup.status_code == 200
    assert lookup.json()["authority"] == str(AUTHOR.identity)
    assert lookup.json()["address"] == body["address"]


def test_duplicate_is_conflict(client, reg):
    client.post("/api/transactions", json=_publish_tx(reg).to_dict())
    resp = client.post("/api/transactions", json=_publish_tx(reg).to_dict())
    assert resp.status_code == 409
    assert resp.json()["code"] == "already_exists"


def test_long_name_is_unprocessable(client, reg):
    tx = Transaction.publish_package(AUTHOR.identity, "vovacodes", "n" * 33, 255).sign(AUTHOR)
    resp = client.post("/api/transactions", json=tx.to_dict())
    assert resp.status_code == 422
    assert resp.json()["code"] == "invalid_string"


def test_unsigned_transaction_is_forbidden(client, reg):
    body = _publish_tx(reg).to_dict()
    body["signatures"] = {}
    assert client.post("/api/transactions", json=body).status_code == 403


def test_malformed_transaction(client):
    body = {"instruction": "publish_package", "authority": "not-hex", "args": {}}
    assert client.post("/api/transactions", json=body).status_code == 422


def test_missing_author_is_not_found(client):
    resp = client.get("/api/authors/nobody")
    assert resp.status_code == 404
    assert resp.json()["code"] == "record_not_found"


def test_author_address(client, reg):
    address, bump = reg.author_address("alice")
    resp = client.get("/api/authors/alice/address")
    assert resp.json() == {"address": str(address), "disambiguator": bump}


def test_oracle_registration_and_unregister(client, reg):
    _, bump = reg.author_address("alice")
    tx = Transaction.register_author(AUTHOR.identity, "alice", bump).sign(AUTHOR)
    resp = client.post("/api/oracle/github", json={"transaction": tx.to_dict()})
    assert resp.status_code == 200, resp.text
    assert resp.json()["author"]["name"] == "alice"

    assert client.get("/api/authors/alice").json()["authority"] == str(AUTHOR.identity)

    address = resp.json()["address"]
    undo = Transaction.unregister_author(AUTHOR.identity, reg.get_author("alice")[0]).sign(AUTHOR)
    resp = client.post("/api/transactions", json=undo.to_dict())
    assert resp.status_code == 200, resp.text
    assert resp.json()["address"] == address
    assert resp.json()["reclaimed_space"] == 80


def test_registration_without_oracle_is_forbidden(client, reg):
    _, bump = reg.author_address("alice")
    tx = Transaction.register_author(AUTHOR.identity, "alice", bump).sign(AUTHOR)
    assert client.post("/api/transactions", json=tx.to_dict()).status_code == 403


@pytest.mark.parametrize("bad_name", [[104, 105], 5, None, True])
def test_non_string_name_is_unprocessable(client, reg, bad_name):
    body = _publish_tx(reg).to_dict()
    body["args"]["name"] = bad_name
    resp = client.post("/api/transactions", json=body)
    assert resp.status_code == 422
    assert reg.list_records() == []


def test_non_string_address_is_unprocessable(client):
    body = {
        "instruction": "unregister_author",
        "authority": str(AUTHOR.identity),
        "args": {"address": 12345},
    }
    assert client.post("/api/transactions", json=body).status_code == 422


def test_oracle_rejects_non_string_name(client):
    body = {
        "transaction": {
            "instruction": "register_author",
            "authority": str(AUTHOR.identity),
            "args": {"name": 123, "disambiguator": 255},
        }
    }
    assert client.post("/api/oracle/github", json=body).status_code == 422


def test_replayed_transaction_is_forbidden(client, reg):
    body = _publish_tx(reg).to_dict()
    assert client.post("/api/transactions", json=body).status_code == 200
    resp = client.post("/api/transactions", json=body)
    assert resp.status_code == 403
    assert resp.json()["code"] == "unauthorized"
