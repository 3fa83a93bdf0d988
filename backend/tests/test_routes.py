"""
HTTP tests: typed ledger errors map to status codes and JSON bodies.
"""

from conftest import stock_item


ACTOR = {"X-Actor-Id": "7"}


class TestHealth:

    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json["status"] == "healthy"
        assert response.json["checks"]["database"]["details"]["registry_entries"] == 0


class TestAccountRoutes:

    def test_create_and_duplicate(self, client, db_session):
        response = client.post("/api/accounts", json={"code": "C100", "name": "Dubai Gold"}, headers=ACTOR)
        assert response.status_code == 201
        assert response.json["balances"]["cashBalance"]["amount"] == 0

        response = client.post("/api/accounts", json={"code": "C100", "name": "Again"}, headers=ACTOR)
        assert response.status_code == 409
        assert response.json["code"] == "DUPLICATE_ACCOUNT"

    def test_missing_account(self, client, db_session):
        response = client.get("/api/accounts/999")
        assert response.status_code == 404
        assert response.json["code"] == "PARTY_NOT_FOUND"

    def test_deactivate(self, client, party):
        response = client.post(f"/api/accounts/{party.id}/deactivate", headers=ACTOR)
        assert response.status_code == 200
        assert response.json["is_active"] is False


class TestMetalTransactionRoutes:

    def test_create_returns_postings(self, client, make_payload):
        response = client.post("/api/metal-transactions", json=make_payload(), headers=ACTOR)
        assert response.status_code == 201
        body = response.json
        assert body["status"] == "draft"
        assert body["created_by"] == 7
        assert len(body["registry_entries"]) == 4
        assert body["registry_entries"][0]["transactionId"].startswith("TXN-")

    def test_validation_error(self, client, db_session):
        response = client.post("/api/metal-transactions", json={"transactionType": "sale"}, headers=ACTOR)
        assert response.status_code == 400
        assert response.json["code"] == "MISSING_REQUIRED_FIELDS"
        assert "partyCode" in response.json["details"]["missing"]

    def test_not_found(self, client, db_session):
        response = client.get("/api/metal-transactions/12345")
        assert response.status_code == 404
        assert response.json["code"] == "TRANSACTION_NOT_FOUND"

    def test_duplicate_voucher(self, client, make_payload):
        payload = make_payload()
        assert client.post("/api/metal-transactions", json=payload, headers=ACTOR).status_code == 201
        response = client.post("/api/metal-transactions", json=payload, headers=ACTOR)
        assert response.status_code == 409
        assert response.json["code"] == "DUPLICATE_VOUCHER"

    def test_remove_last_item_is_unprocessable(self, client, make_payload):
        created = client.post("/api/metal-transactions", json=make_payload(), headers=ACTOR).json
        item_id = created["stock_items"][0]["id"]
        response = client.delete(
            f"/api/metal-transactions/{created['id']}/stock-items/{item_id}",
            headers=ACTOR,
        )
        assert response.status_code == 422
        assert response.json["code"] == "MINIMUM_STOCK_ITEMS_REQUIRED"

    def test_update_delete_flow(self, client, party, stock, make_payload):
        created = client.post("/api/metal-transactions", json=make_payload(), headers=ACTOR).json

        response = client.put(
            f"/api/metal-transactions/{created['id']}",
            json={"stockItems": [stock_item(stock.id, pureWeight=90)]},
            headers=ACTOR,
        )
        assert response.status_code == 200
        assert response.json["stock_items"][0]["pure_weight"] == 90

        totals = client.get(f"/api/metal-transactions/{created['id']}/totals").json
        assert totals["balanceChanges"]["goldBalance"] == 90

        response = client.delete(f"/api/metal-transactions/{created['id']}", headers=ACTOR)
        assert response.status_code == 200
        assert response.json["deleted"] is True

        registry = client.get(f"/api/registry/transactions/{created['id']}").json
        assert registry["entries"] == []

    def test_status_and_cancel(self, client, make_payload):
        created = client.post("/api/metal-transactions", json=make_payload(), headers=ACTOR).json
        url = f"/api/metal-transactions/{created['id']}"

        assert client.post(f"{url}/status", json={"status": "confirmed"}, headers=ACTOR).status_code == 200
        response = client.post(f"{url}/status", json={"status": "draft"}, headers=ACTOR)
        assert response.status_code == 400
        assert response.json["code"] == "INVALID_STATUS_TRANSITION"

        response = client.post(f"{url}/cancel", headers=ACTOR)
        assert response.status_code == 200
        assert response.json["status"] == "cancelled"

    def test_bulk_partial_success(self, client, make_payload):
        response = client.post(
            "/api/metal-transactions/bulk",
            json=[make_payload(), make_payload(transactionType="gift")],
            headers=ACTOR,
        )
        assert response.status_code == 207
        assert [r["success"] for r in response.json["results"]] == [True, False]

    def test_list_filters(self, client, make_payload):
        client.post("/api/metal-transactions", json=make_payload(), headers=ACTOR)
        client.post("/api/metal-transactions", json=make_payload(transactionType="sale"), headers=ACTOR)
        response = client.get("/api/metal-transactions?transaction_type=sale")
        assert [t["transaction_type"] for t in response.json["transactions"]] == ["sale"]

        response = client.get("/api/metal-transactions?from_date=not-a-date")
        assert response.status_code == 400
        assert response.json["code"] == "INVALID_DATE"

    def test_bad_actor_header(self, client, make_payload):
        response = client.post("/api/metal-transactions", json=make_payload(), headers={"X-Actor-Id": "abc"})
        assert response.status_code == 400


class TestOtherRoutes:

    def test_registry_party_view(self, client, party, make_payload):
        client.post("/api/metal-transactions", json=make_payload(), headers=ACTOR)
        body = client.get(f"/api/registry/parties/{party.id}").json
        assert len(body["entries"]) == 2
        assert body["summary"]["credit"] == 150

        response = client.get("/api/registry/balance?party_id=x")
        assert response.status_code == 400

    def test_fixing_and_transfer_routes(self, client, party, other_party):
        response = client.post("/api/fixings", json={
            "party_id": party.id,
            "type": "PURCHASE",
            "orders": [{"quantity_gm": 1, "price": 250, "gold_bid_value": 2450}],
        }, headers=ACTOR)
        assert response.status_code == 201

        response = client.post("/api/fund-transfers", json={
            "sender_id": party.id,
            "receiver_id": other_party.id,
            "value": 100,
            "asset_type": "CASH",
        }, headers=ACTOR)
        assert response.status_code == 201

        response = client.post("/api/fund-transfers", json={"sender_id": party.id}, headers=ACTOR)
        assert response.status_code == 400

        response = client.post("/api/fund-transfers/opening-balance", json={
            "receiver_id": party.id,
            "value": 500,
            "asset_type": "CASH",
        }, headers=ACTOR)
        assert response.status_code == 201

        summary = client.get(f"/api/accounts/{party.id}/summary").json
        assert summary["balances"]["cashBalance"]["amount"] == 250 - 100 + 500

    def test_fixing_update_and_cancel_routes(self, client, party):
        created = client.post("/api/fixings", json={
            "party_id": party.id,
            "type": "PURCHASE",
            "orders": [{"quantity_gm": 1, "price": 250, "gold_bid_value": 2450}],
        }, headers=ACTOR).json
        url = f"/api/fixings/{created['id']}"

        response = client.put(url, json={
            "orders": [{"quantity_gm": 2, "price": 250, "gold_bid_value": 2450}],
        }, headers=ACTOR)
        assert response.status_code == 200
        assert response.json["orders"][0]["total_amount"] == 500

        response = client.post(f"{url}/cancel", headers=ACTOR)
        assert response.status_code == 200
        assert response.json["status"] == "cancelled"

        response = client.put(url, json={"type": "SELL"}, headers=ACTOR)
        assert response.status_code == 409
        assert response.json["code"] == "FIXING_CANCELLED"

        assert client.post(f"{url}/restore", headers=ACTOR).json["status"] == "active"
        summary = client.get(f"/api/accounts/{party.id}/summary").json
        assert summary["balances"]["cashBalance"]["amount"] == 500

    def test_entry_routes(self, client, party):
        response = client.post("/api/entries", json={
            "type": "cash receipt",
            "party_id": party.id,
            "lines": [{"amount": 75}],
        }, headers=ACTOR)
        assert response.status_code == 201
        entry_id = response.json["id"]

        assert client.get(f"/api/entries/{entry_id}").status_code == 200
        assert client.delete(f"/api/entries/{entry_id}", headers=ACTOR).status_code == 200
        assert client.get(f"/api/entries/{entry_id}").status_code == 404
