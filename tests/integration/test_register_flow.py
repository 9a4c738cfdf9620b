"""
Integration tests for the subdomain sale flow.

Runs the full application (lifespan included) against the in-memory
storage backend and the simulated host ledger.
"""

import json
import logging
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from src.adapters.chain.memory import InMemoryChain
from src.api.main import app
from src.config.settings import get_settings
from src.domain.identity import labelhash, namehash, to_hex

pytestmark = pytest.mark.integration

ROOT = "0x" + "01" * 20
DEED_REGISTRY = "0x" + "de" * 20
REGISTRAR = "0x" + "5a" * 20
RESOLVER = "0x" + "7e" * 20
ADMIN = "0x" + "ad" * 20
OWNER = "0x" + "a1" * 20
BUYER = "0x" + "b0" * 20
REFERRER = "0x" + "cc" * 20

LABEL = labelhash("example")
LABEL_HEX = to_hex(LABEL)


def caller(address: str) -> dict[str, str]:
    return {"X-Caller": address}


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    """Start the application with a funded buyer and a fresh host."""
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("REGISTRAR_ADDRESS", REGISTRAR)
    monkeypatch.setenv("REGISTRAR_OWNER", ADMIN)
    monkeypatch.setenv("TLD", "eth")
    monkeypatch.setenv("ROOT_OWNER_ADDRESS", ROOT)
    monkeypatch.setenv("DEED_REGISTRY_ADDRESS", DEED_REGISTRY)
    monkeypatch.setenv("DEFAULT_RESOLVER_ADDRESS", RESOLVER)
    monkeypatch.setenv("GENESIS_BALANCES", json.dumps({BUYER: 1_000}))
    get_settings.cache_clear()

    with TestClient(app) as test_client:
        yield test_client

    get_settings.cache_clear()


@pytest.fixture
def chain(client: TestClient) -> InMemoryChain:
    return client.app.state.chain


@pytest.fixture
def listed(client: TestClient, chain: InMemoryChain) -> None:
    """Deposit the 'example' deed with the registrar and list it."""
    chain.issue_deed(LABEL, OWNER)
    chain.transfer_deed(OWNER, LABEL, REGISTRAR)
    response = client.post(
        "/v1/domains",
        json={"name": "example", "price": 10, "referral_fee_ppm": 100_000},
        headers=caller(OWNER),
    )
    assert response.status_code == 200


class TestStartup:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_registrar_initialized_with_admin(self, client: TestClient) -> None:
        response = client.get("/v1/registrar")
        assert response.json() == {"owner": ADMIN, "stopped": False}

    def test_tld_held_by_deed_registry(self, chain: InMemoryChain) -> None:
        assert chain.owner(namehash("eth")) == DEED_REGISTRY
        assert chain.balance_of(BUYER) == 1_000


class TestListingFlow:
    def test_listing_is_readable(self, client: TestClient, listed: None) -> None:
        response = client.get(f"/v1/labels/{LABEL_HEX}")

        assert response.json() == {
            "label": LABEL_HEX,
            "name": "example",
            "owner": OWNER,
            "price": 10,
            "referral_fee_ppm": 100_000,
            "listed": True,
            "controller": OWNER,
        }

    def test_stranger_cannot_list(self, client: TestClient, chain: InMemoryChain) -> None:
        chain.issue_deed(LABEL, OWNER)
        chain.transfer_deed(OWNER, LABEL, REGISTRAR)

        response = client.post(
            "/v1/domains", json={"name": "example", "price": 10}, headers=caller(BUYER)
        )

        assert response.status_code == 403
        assert client.get(f"/v1/labels/{LABEL_HEX}").json()["listed"] is False

    def test_unlist_makes_subdomains_unavailable(self, client: TestClient, listed: None) -> None:
        response = client.delete("/v1/domains/example", headers=caller(OWNER))
        assert response.status_code == 200
        assert response.json()["listed"] is False

        query = client.get(f"/v1/labels/{LABEL_HEX}/subdomains/alice").json()
        assert query["available"] is False
        assert query["name"] == ""


class TestRegisterFlow:
    def test_full_registration_flow(
        self,
        client: TestClient,
        chain: InMemoryChain,
        listed: None,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Quote, buy with overpayment and referral, then verify the host."""
        query = client.get(f"/v1/labels/{LABEL_HEX}/subdomains/alice").json()
        assert query == {
            "name": "example",
            "price": 10,
            "rent": 0,
            "referral_fee_ppm": 100_000,
            "available": True,
        }

        with caplog.at_level(logging.INFO):
            response = client.post(
                f"/v1/labels/{LABEL_HEX}/subdomains",
                json={"subdomain": "alice", "resolver": RESOLVER, "value": 15, "referrer": REFERRER},
                headers=caller(BUYER),
            )

        node = namehash("alice.example.eth")
        assert response.status_code == 201
        assert response.json() == {
            "label": LABEL_HEX,
            "subdomain": "alice",
            "node": to_hex(node),
            "owner": BUYER,
        }
        assert "[EVENT] NewRegistration" in caplog.text

        assert chain.owner(node) == BUYER
        assert chain.resolver(node) == RESOLVER
        assert chain.addr(RESOLVER, node) == BUYER

        assert chain.balance_of(BUYER) == 990
        assert chain.balance_of(REFERRER) == 1
        assert chain.balance_of(OWNER) == 9
        assert chain.balance_of(REGISTRAR) == 0

    def test_second_registration_conflicts_and_keeps_funds(
        self, client: TestClient, chain: InMemoryChain, listed: None
    ) -> None:
        body = {"subdomain": "alice", "resolver": RESOLVER, "value": 10}
        assert client.post(
            f"/v1/labels/{LABEL_HEX}/subdomains", json=body, headers=caller(BUYER)
        ).status_code == 201

        response = client.post(
            f"/v1/labels/{LABEL_HEX}/subdomains", json=body, headers=caller(BUYER)
        )

        assert response.status_code == 409
        assert response.json() == {"detail": "Subdomain is not available"}
        assert chain.balance_of(BUYER) == 990

    def test_underpayment_is_rejected(
        self, client: TestClient, chain: InMemoryChain, listed: None
    ) -> None:
        response = client.post(
            f"/v1/labels/{LABEL_HEX}/subdomains",
            json={"subdomain": "alice", "resolver": RESOLVER, "value": 9},
            headers=caller(BUYER),
        )

        assert response.status_code == 402
        assert chain.balance_of(BUYER) == 1_000
        assert chain.owner(namehash("alice.example.eth")) == "0x" + "00" * 20

    def test_unfunded_caller_is_rejected(self, client: TestClient, listed: None) -> None:
        response = client.post(
            f"/v1/labels/{LABEL_HEX}/subdomains",
            json={"subdomain": "alice", "resolver": RESOLVER, "value": 10},
            headers=caller(REFERRER),
        )
        assert response.status_code == 402
        assert response.json() == {"detail": "Insufficient funds"}

    def test_stopped_registrar_refuses_sales(self, client: TestClient, listed: None) -> None:
        assert client.post("/v1/registrar/stop", headers=caller(ADMIN)).json()["stopped"] is True

        response = client.post(
            f"/v1/labels/{LABEL_HEX}/subdomains",
            json={"subdomain": "alice", "resolver": RESOLVER, "value": 10},
            headers=caller(BUYER),
        )

        assert response.status_code == 503


class TestCapabilityProbe:
    @pytest.mark.parametrize(
        "interface_id, supported",
        [("0x01ffc9a7", True), ("0xffffffff", False)],
    )
    def test_supports_interface(
        self, client: TestClient, interface_id: str, supported: bool
    ) -> None:
        response = client.get(f"/v1/interfaces/{interface_id}")
        assert response.json() == {"interface_id": interface_id, "supported": supported}
