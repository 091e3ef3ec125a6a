"""Pull-path restore through the Tebex Plugin API."""

from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from plus_api.modules.payments.service import grant_payment, restore_purchases
from plus_api.modules.payments.tebex.events import parse_payload
from plus_api.modules.payments.tebex import plugin_api
from plus_api.modules.payments.tebex.plugin_api import (
    BillingProviderError,
    TebexPluginClient,
    get_plugin_client,
)

from factories import edges, make_cosmetic, map_package, payment_event, product

BASE_URL = "https://plugin.tebex.test"


def _active(txn_id: str, package_id: int) -> dict:
    return {
        "txn_id": txn_id,
        "date": "2025-10-01T12:00:00+00:00",
        "quantity": 1,
        "package": {"id": package_id, "name": f"Package {package_id}"},
    }


def _client(handler) -> TebexPluginClient:
    return TebexPluginClient(
        secret="game-server-secret",
        base_url=BASE_URL,
        http=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def _serving(packages: List[dict], seen: list = None) -> TebexPluginClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(200, json=packages)

    return _client(handler)


class TestPluginClient:
    def test_request_shape(self, player):
        seen: list = []
        packages = _serving([_active("tbx-1", 100)], seen).active_packages(player)

        assert [p.package.id for p in packages] == [100]
        assert packages[0].txn_id == "tbx-1"
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == f"/player/{player.hex}/packages"
        assert request.headers["X-Tebex-Secret"] == "game-server-secret"
        assert request.headers["User-Agent"].startswith("plus-backend/")

    def test_package_filter(self, player):
        seen: list = []
        _serving([], seen).active_packages(player, package="100")
        assert seen[0].url.params["package"] == "100"

    def test_not_found_means_no_purchases(self, player):
        client = _client(lambda request: httpx.Response(404, json={"error_message": "not found"}))
        assert client.active_packages(player) == []

    def test_server_error(self, player):
        client = _client(lambda request: httpx.Response(500, text="oops"))
        with pytest.raises(BillingProviderError) as e:
            client.active_packages(player)
        assert e.value.details == {"status_code": 500}

    def test_transport_error(self, player):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(BillingProviderError):
            _client(handler).active_packages(player)

    def test_undecodable_body(self, player):
        client = _client(lambda request: httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(BillingProviderError):
            client.active_packages(player)


class TestPluginClientSettings:
    def test_settings_read_per_request(self, monkeypatch, player):
        seen: list = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        client = TebexPluginClient(http=httpx.Client(transport=httpx.MockTransport(handler)))
        monkeypatch.setenv("TEBEX_PLUGIN_API_URL", BASE_URL)
        monkeypatch.setenv("TEBEX_GAME_SERVER_SECRET", "first")
        client.active_packages(player)
        monkeypatch.setenv("TEBEX_GAME_SERVER_SECRET", "rotated")
        client.active_packages(player)

        assert [r.headers["X-Tebex-Secret"] for r in seen] == ["first", "rotated"]
        assert seen[0].url.host == "plugin.tebex.test"

    def test_shared_client_closed_on_shutdown(self, monkeypatch):
        from fastapi.testclient import TestClient

        from plus_api.main import app

        monkeypatch.setattr(plugin_api, "_client", None)
        with TestClient(app):
            shared = get_plugin_client()
            assert get_plugin_client() is shared

        assert plugin_api._client is None
        assert shared._http.is_closed


class TestRestorePurchases:
    def test_grants_mapped_packages(self, player):
        cape = make_cosmetic("cape")
        emote = make_cosmetic("emote")
        map_package(100, cape)
        map_package(101, emote)

        restored = restore_purchases(player, _serving([_active("tbx-1", 100), _active("tbx-2", 101)]))

        assert restored == ["tbx-1", "tbx-2"]
        assert edges(player) == {
            cape: {"transaction_id": "tbx-1", "active": False},
            emote: {"transaction_id": "tbx-2", "active": False},
        }

    def test_second_restore_reports_nothing(self, player):
        cape = make_cosmetic("cape")
        map_package(100, cape)
        client = _serving([_active("tbx-1", 100)])

        assert restore_purchases(player, client) == ["tbx-1"]
        assert restore_purchases(player, client) == []
        assert list(edges(player)) == [cape]

    def test_latest_transaction_wins_per_package(self, player):
        cape_a = make_cosmetic("cape")
        emote_a = make_cosmetic("emote")
        cape_b = make_cosmetic("cape")
        map_package(100, cape_a)
        map_package(100, emote_a)
        map_package(101, cape_b)
        client = _serving([_active("old", 100), _active("t2", 101), _active("new", 100)])

        restored = restore_purchases(player, client)

        assert restored == ["new", "t2"]
        assert edges(player) == {
            cape_a: {"transaction_id": "new", "active": False},
            emote_a: {"transaction_id": "new", "active": False},
            cape_b: {"transaction_id": "t2", "active": False},
        }

    def test_transaction_ids_deduplicated(self, player):
        cape = make_cosmetic("cape")
        emote = make_cosmetic("emote")
        map_package(100, cape)
        map_package(100, emote)

        assert restore_purchases(player, _serving([_active("tbx-1", 100)])) == ["tbx-1"]

    def test_unmapped_packages_ignored(self, player):
        assert restore_purchases(player, _serving([_active("tbx-1", 555)])) == []
        assert edges(player) == {}

    def test_no_purchases(self, player):
        client = _client(lambda request: httpx.Response(404))
        assert restore_purchases(player, client) == []

    def test_provider_failure_grants_nothing(self, player):
        cape = make_cosmetic("cape")
        map_package(100, cape)
        client = _client(lambda request: httpx.Response(503))

        with pytest.raises(BillingProviderError):
            restore_purchases(player, client)
        assert edges(player) == {}


class TestPushPullConvergence:
    def test_push_then_restore(self, player):
        cape = make_cosmetic("cape")
        map_package(100, cape)
        event = payment_event("tbx-push", player, [product(100, custom=f"cosmetic:{cape}")])
        grant_payment(parse_payload(json.dumps(event).encode()).webhook_type.payment)

        assert restore_purchases(player, _serving([_active("tbx-push", 100)])) == []
        assert edges(player) == {cape: {"transaction_id": "tbx-push", "active": False}}

    def test_restore_then_push(self, player):
        cape = make_cosmetic("cape")
        map_package(100, cape)
        assert restore_purchases(player, _serving([_active("tbx-pull", 100)])) == ["tbx-pull"]

        event = payment_event("tbx-pull", player, [product(100)])
        assert grant_payment(parse_payload(json.dumps(event).encode()).webhook_type.payment) == []
        assert list(edges(player)) == [cape]


class TestRestoreRoute:
    def test_restore_endpoint(self, client, player):
        cape = make_cosmetic("cape")
        map_package(100, cape)
        client.app.dependency_overrides[get_plugin_client] = lambda: _serving([_active("tbx-1", 100)])

        resp = client.post("/payments/restore", params={"player": str(player)})

        assert resp.status_code == 200
        assert resp.json() == {"restored_ids": ["tbx-1"]}
        assert list(edges(player)) == [cape]

    def test_accepts_undashed_player(self, client, player):
        client.app.dependency_overrides[get_plugin_client] = lambda: _serving([])
        resp = client.post("/payments/restore", params={"player": player.hex})
        assert resp.status_code == 200
        assert resp.json() == {"restored_ids": []}

    def test_invalid_player(self, client):
        resp = client.post("/payments/restore", params={"player": "steve"})
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"

    def test_provider_failure_is_502(self, client, player):
        client.app.dependency_overrides[get_plugin_client] = lambda: _client(lambda request: httpx.Response(500))
        resp = client.post("/payments/restore", params={"player": str(player)})
        assert resp.status_code == 502
        assert resp.json()["error"] == "billing_provider_error"
