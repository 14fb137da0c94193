"""
Tests: HTTP layer over the ledger.

Run with:
    pytest margin_calculator/tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from margin_calculator.api import create_app
from margin_calculator.engine.ledger import ProductLedger
from margin_calculator.models.enums import FreeSetPolicy


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(ProductLedger(policy=FreeSetPolicy.PAIR)))


def _add(client: TestClient, code="A", name="Pen", reference_price=10):
    return client.post(
        "/api/ledger/rows",
        json={"code": code, "name": name, "reference_price": reference_price},
    )


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestRows:
    def test_add_and_duplicate(self, client):
        first = _add(client)
        assert first.status_code == 200
        assert first.json()["added"] is True
        assert first.json()["row"]["cost"] == 10

        second = _add(client, name="Other", reference_price=99)
        assert second.json()["added"] is False
        assert second.json()["row"]["name"] == "Pen"

    def test_manual_row(self, client):
        resp = client.post("/api/ledger/rows/manual", json={"code": " X-9 ", "name": "Custom"})
        assert resp.json()["row"]["code"] == "X-9"
        assert resp.json()["row"]["cost"] is None

    def test_manual_row_requires_code(self, client):
        resp = client.post("/api/ledger/rows/manual", json={"code": "  "})
        assert resp.status_code == 400

    def test_update_field(self, client):
        _add(client)
        resp = client.patch("/api/ledger/rows/A", json={"field": "price", "value": 12.5})
        assert resp.status_code == 200
        body = resp.json()
        assert body["markup_pct"] == pytest.approx(25.0)
        assert body["margin_pct"] == pytest.approx(20.0)
        assert body["locked_fields"] == ["markup", "margin"]
        assert body["lock_state"] == "DERIVED_PAIR"

    def test_update_with_text_clears_field(self, client):
        _add(client)
        client.patch("/api/ledger/rows/A", json={"field": "price", "value": 12.5})
        resp = client.patch("/api/ledger/rows/A", json={"field": "price", "value": "n/a"})
        assert resp.json()["price"] is None
        assert resp.json()["markup_pct"] is None

    def test_update_unknown_code(self, client):
        resp = client.patch("/api/ledger/rows/NOPE", json={"field": "price", "value": 1})
        assert resp.status_code == 404

    def test_update_unknown_field(self, client):
        _add(client)
        resp = client.patch("/api/ledger/rows/A", json={"field": "discount", "value": 1})
        assert resp.status_code == 422

    def test_remove_and_clear(self, client):
        _add(client, code="A")
        _add(client, code="B")
        assert client.delete("/api/ledger/rows/A").status_code == 200
        assert client.delete("/api/ledger/rows/A").status_code == 404
        assert client.delete("/api/ledger/rows").json() == {"cleared": 1}
        assert client.get("/api/ledger").json()["rows"] == []


class TestGlobalApply:
    def test_apply_margin_and_undo(self, client):
        _add(client, code="A", reference_price=10)
        client.post("/api/ledger/rows/manual", json={"code": "B"})

        resp = client.post("/api/ledger/apply/margin", json={"target": 30})
        assert resp.status_code == 200
        assert resp.json()["rows_applied"] == 1
        assert resp.json()["rows_skipped"] == 1

        state = client.get("/api/ledger").json()
        assert state["can_undo"] is True
        assert state["margin_target"] == 30
        row_a = state["rows"][0]
        assert row_a["price"] == pytest.approx(14.2857, rel=1e-4)
        assert row_a["locked_fields"] == ["markup"]

        undone = client.post("/api/ledger/undo").json()
        assert undone["rows"][0]["price"] is None
        assert undone["can_undo"] is False
        assert client.post("/api/ledger/undo").status_code == 409

    def test_apply_markup_uses_stored_target(self, client):
        _add(client, reference_price=10)
        client.put("/api/ledger/targets", json={"markup_target": 20})
        resp = client.post("/api/ledger/apply/markup")
        assert resp.json()["target"] == 20
        assert client.get("/api/ledger").json()["rows"][0]["price"] == pytest.approx(12.0)

    def test_targets(self, client):
        resp = client.put("/api/ledger/targets", json={"margin_target": 45})
        assert resp.json() == {"margin_target": 45.0, "markup_target": 50.0}


class TestClientAndExport:
    def test_client_header(self, client):
        resp = client.put("/api/ledger/client", json={"name": "Acme Corp"})
        assert resp.json()["name"] == "Acme Corp"
        assert client.get("/api/ledger").json()["client"]["name"] == "Acme Corp"
        assert client.delete("/api/ledger/client").json()["name"] == ""

    def test_export_empty_ledger(self, client):
        assert client.get("/api/ledger/export/xlsx").status_code == 400
        assert client.get("/api/ledger/export/csv").status_code == 400

    def test_export_downloads(self, client):
        _add(client)
        client.put("/api/ledger/client", json={"name": "Acme Corp"})

        xlsx = client.get("/api/ledger/export/xlsx")
        assert xlsx.status_code == 200
        assert xlsx.headers["content-type"].startswith("application/vnd.openxmlformats")
        assert "margin_calculator_acme_corp_" in xlsx.headers["content-disposition"]
        assert xlsx.content[:2] == b"PK"

        csv_resp = client.get("/api/ledger/export/csv")
        assert csv_resp.status_code == 200
        assert csv_resp.content.startswith(b"\xef\xbb\xbf")
        assert '"A","Pen"' in csv_resp.content.decode("utf-8-sig")

    def test_export_with_non_ascii_client(self, client):
        _add(client)
        client.put("/api/ledger/client", json={"name": "Ferretería Łódź 李"})

        for fmt in ("xlsx", "csv"):
            resp = client.get(f"/api/ledger/export/{fmt}")
            assert resp.status_code == 200
            assert "margin_calculator_ferreteria_odz_" in resp.headers["content-disposition"]


class TestAuditAndFeed:
    def test_audit_trail(self, client):
        _add(client)
        client.patch("/api/ledger/rows/A", json={"field": "cost", "value": 8})
        _add(client, code="B")

        trail = client.get("/api/ledger/audit", params={"code": "A"}).json()
        assert [e["action"] for e in trail] == ["added", "updated"]
        assert len(client.get("/api/ledger/audit").json()) == 3

    def test_websocket_replays_history(self, client):
        _add(client)
        with client.websocket_connect("/api/ledger/ws") as ws:
            event = ws.receive_json()
        assert event["action"] == "added"
        assert event["code"] == "A"
        assert event["row"]["cost"] == 10

    def test_websocket_receives_live_events(self):
        app = create_app(ProductLedger(policy=FreeSetPolicy.PAIR))
        with TestClient(app) as live:
            with live.websocket_connect("/api/ledger/ws") as ws:
                _add(live)
                live.patch("/api/ledger/rows/A", json={"field": "price", "value": 12.5})
                added = ws.receive_json()
                updated = ws.receive_json()
        assert added["action"] == "added"
        assert updated["action"] == "updated"
        assert updated["row"]["markup_pct"] == pytest.approx(25.0)
