"""API tests through the FastAPI test client."""

import pytest


def create_portfolio(client, name="长盈智投组合"):
    response = client.post("/api/portfolios", json={"name": name, "description": "成长赛道"})
    assert response.status_code == 201
    return response.json()["data"]


def create_position(client, portfolio_id, **overrides):
    payload = {
        "portfolio_id": portfolio_id,
        "stock_code": "300750",
        "stock_name": "宁德时代",
        "sector": "新能源",
        "quantity": 100,
        "avg_cost": 100.0,
    }
    payload.update(overrides)
    response = client.post("/api/positions", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def portfolio(client):
    return create_portfolio(client)


class TestEnvelope:

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["success"] is True
        assert body["data"]["status"] == "healthy"
        assert body["data"]["database"] == "connected"

    def test_unknown_route(self, client):
        response = client.get("/api/unknown")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "接口不存在",
            "error": "NOT_FOUND",
            "path": "/api/unknown",
        }

    def test_validation_error(self, client):
        response = client.post("/api/portfolios", json={"name": ""})

        body = response.json()
        assert response.status_code == 422
        assert body["success"] is False
        assert body["error"] == "VALIDATION_ERROR"
        assert body["details"]

    def test_missing_entity(self, client):
        response = client.get("/api/portfolios/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"
        assert "missing" in response.json()["message"]

    def test_metrics(self, client, portfolio):
        client.get(f"/api/risk/portfolios/{portfolio['id']}/assessment")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "risk_assessments_total" in response.text


class TestPortfolios:

    def test_crud(self, client, portfolio):
        listed = client.get("/api/portfolios").json()["data"]
        assert [p["id"] for p in listed] == [portfolio["id"]]

        updated = client.put(f"/api/portfolios/{portfolio['id']}", json={"name": "新组合"}).json()
        assert updated["data"]["name"] == "新组合"
        assert updated["data"]["description"] == "成长赛道"

        deleted = client.delete(f"/api/portfolios/{portfolio['id']}")
        assert deleted.json() == {"success": True, "data": None, "message": "投资组合删除成功"}
        assert client.get(f"/api/portfolios/{portfolio['id']}").status_code == 404

    def test_detail_with_positions(self, client, portfolio):
        create_position(client, portfolio["id"], current_price=110.0)
        create_position(client, portfolio["id"], stock_code="002415", stock_name="海康威视",
                        sector="AI算力", current_price=90.0)

        detail = client.get(f"/api/portfolios/{portfolio['id']}").json()["data"]

        assert detail["total_value"] == pytest.approx(20000.0)
        assert len(detail["positions"]) == 2
        assert detail["sector_weights"]["新能源"] == pytest.approx(0.55)
        assert detail["sector_weights"]["AI算力"] == pytest.approx(0.45)
        assert detail["sector_weights"]["军工"] == 0.0

    def test_csv_export(self, client, portfolio):
        create_position(client, portfolio["id"])

        response = client.get(f"/api/portfolios/{portfolio['id']}/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "宁德时代" in response.text


class TestPositions:

    def test_create_defaults(self, client, portfolio):
        position = create_position(client, portfolio["id"])

        assert position["current_price"] == 100.0
        assert position["stop_loss"] == 90.0
        assert position["take_profit"] == 120.0
        assert position["weight"] == 1.0
        assert position["risk_level"] == "medium"

    def test_unknown_sector_rejected(self, client, portfolio):
        response = client.post("/api/positions", json={
            "portfolio_id": portfolio["id"], "stock_code": "300750", "stock_name": "宁德时代",
            "sector": "消费", "quantity": 100, "avg_cost": 100.0,
        })

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_position_for_missing_portfolio(self, client):
        response = client.post("/api/positions", json={
            "portfolio_id": "missing", "stock_code": "300750", "stock_name": "宁德时代",
            "sector": "新能源", "quantity": 100, "avg_cost": 100.0,
        })

        assert response.status_code == 404

    def test_price_refresh(self, client, portfolio):
        position = create_position(client, portfolio["id"])

        response = client.put("/api/positions/prices", json={
            "prices": [{"stock_code": "300750", "current_price": 120.0}],
        })

        assert response.json()["data"] == {"updated": 1}
        refreshed = client.get(f"/api/positions/{position['id']}").json()["data"]
        assert refreshed["current_price"] == 120.0
        assert refreshed["unrealized_pnl_percent"] == pytest.approx(20.0)

    def test_update_and_delete(self, client, portfolio):
        position = create_position(client, portfolio["id"])

        updated = client.put(f"/api/positions/{position['id']}", json={"risk_level": "high"}).json()
        assert updated["data"]["risk_level"] == "high"

        client.delete(f"/api/positions/{position['id']}")
        assert client.get("/api/positions", params={"portfolio_id": portfolio["id"]}).json()["data"] == []


class TestTransactions:

    def test_buy_then_sell(self, client, portfolio):
        trade = {
            "portfolio_id": portfolio["id"], "stock_code": "002594", "stock_name": "比亚迪",
            "type": "BUY", "quantity": 1000, "price": 180.5, "commission": 90.25, "sector": "车与智能驾驶",
        }
        assert client.post("/api/transactions", json=trade).status_code == 201

        sell = dict(trade, type="SELL", quantity=400, price=190.0, commission=0)
        assert client.post("/api/transactions", json=sell).status_code == 201

        history = client.get("/api/transactions", params={"portfolio_id": portfolio["id"]}).json()["data"]
        assert len(history) == 2
        [position] = client.get("/api/positions", params={"portfolio_id": portfolio["id"]}).json()["data"]
        assert position["quantity"] == 600

    def test_oversell(self, client, portfolio):
        response = client.post("/api/transactions", json={
            "portfolio_id": portfolio["id"], "stock_code": "002594", "stock_name": "比亚迪",
            "type": "SELL", "quantity": 10, "price": 180.5,
        })

        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_INPUT"


class TestRisk:

    @pytest.fixture
    def holdings(self, client, portfolio):
        create_position(client, portfolio["id"], current_price=85.0, stop_loss=90.0)
        create_position(client, portfolio["id"], stock_code="002415", stock_name="海康威视",
                        sector="AI算力", current_price=130.0, risk_level="low")
        return portfolio["id"]

    def test_assessment(self, client, holdings):
        data = client.get(f"/api/risk/portfolios/{holdings}/assessment").json()["data"]

        assert data["portfolio_id"] == holdings
        assert data["overall_risk_level"] in ("low", "medium", "high")
        assert data["risk_distribution"] == {"low": 1, "medium": 1, "high": 0}
        assert len(data["position_risks"]) == 2
        assert {s["sector"] for s in data["sector_risks"]} == {"新能源", "AI算力"}

    def test_assessment_rejects_unknown_level_source(self, client, holdings):
        response = client.get(f"/api/risk/portfolios/{holdings}/assessment", params={"level_source": "latest"})

        assert response.status_code == 422

    def test_alerts(self, client, holdings):
        data = client.get(f"/api/risk/portfolios/{holdings}/alerts").json()["data"]

        assert [a["stock_code"] for a in data["stop_loss_alerts"]] == ["300750"]
        assert [a["stock_code"] for a in data["take_profit_alerts"]] == ["002415"]
        assert data["stop_loss_alerts"][0]["alert_level"] == "CRITICAL"

    def test_rebalance(self, client, holdings):
        data = client.get(f"/api/risk/portfolios/{holdings}/rebalance").json()["data"]

        # Weights 39.5% and 60.5%: both positions too large, only AI算力 above the sector cap
        assert sorted(s["type"] for s in data) == ["diversify", "reduce", "reduce"]
        assert [s["sector"] for s in data if s["type"] == "diversify"] == ["AI算力"]

    def test_text_report(self, client, holdings):
        response = client.get(f"/api/risk/portfolios/{holdings}/report")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("风险评估报告")

    def test_position_risk(self, client, holdings):
        [position, *_] = client.get("/api/positions", params={"portfolio_id": holdings}).json()["data"]

        data = client.get(f"/api/risk/positions/{position['id']}").json()["data"]

        assert data["position_id"] == position["id"]
        assert 0 <= data["total_risk_score"] <= 100

    def test_missing_portfolio(self, client):
        assert client.get("/api/risk/portfolios/missing/alerts").status_code == 404


class TestDiscipline:

    def test_defaults_then_update(self, client, portfolio):
        defaults = client.get(f"/api/discipline/{portfolio['id']}").json()["data"]
        assert defaults["stop_loss_percent"] == 0.1

        updated = client.put(f"/api/discipline/{portfolio['id']}", json={"stop_loss_percent": 0.08}).json()
        assert updated["data"]["stop_loss_percent"] == 0.08
        assert updated["data"]["take_profit_percent"] == 0.2

    def test_out_of_range(self, client, portfolio):
        response = client.put(f"/api/discipline/{portfolio['id']}", json={"max_sector_weight": 2})

        assert response.status_code == 422

    def test_check(self, client, portfolio):
        create_position(client, portfolio["id"], current_price=85.0)

        body = client.get(f"/api/discipline/{portfolio['id']}/check").json()

        assert [v["stock_code"] for v in body["data"]["stop_loss"]] == ["300750"]
        assert body["message"].startswith("发现")

    def test_missing_portfolio(self, client):
        assert client.get("/api/discipline/missing").status_code == 404


class TestReports:

    def test_generate_and_export(self, client, portfolio):
        create_position(client, portfolio["id"])

        created = client.post("/api/reports", json={"portfolio_id": portfolio["id"], "type": "ALERT"})
        assert created.status_code == 201
        report = created.json()["data"]
        assert report["type"] == "ALERT"

        exported = client.get(f"/api/reports/{report['id']}/export", params={"format": "json"})
        assert exported.headers["content-type"].startswith("application/json")
        assert exported.json()["id"] == report["id"]

        listed = client.get("/api/reports", params={"portfolio_id": portfolio["id"]}).json()["data"]
        assert [r["id"] for r in listed] == [report["id"]]

    def test_unsupported_export_format(self, client, portfolio):
        report = client.post("/api/reports", json={"portfolio_id": portfolio["id"]}).json()["data"]

        response = client.get(f"/api/reports/{report['id']}/export", params={"format": "pdf"})

        assert response.status_code == 422


class TestDashboard:

    def test_overview(self, client, portfolio):
        client.post("/api/transactions", json={
            "portfolio_id": portfolio["id"], "stock_code": "300750", "stock_name": "宁德时代",
            "type": "BUY", "quantity": 100, "price": 165.8, "sector": "新能源",
        })

        data = client.get("/api/dashboard/overview").json()["data"]

        assert data["portfolios"]["total"] == 1
        assert data["positions"]["total"] == 1
        assert data["recent_transactions"][0]["stock_code"] == "300750"

    def test_risk_analysis(self, client, portfolio):
        create_position(client, portfolio["id"], current_price=112.0)
        create_position(client, portfolio["id"], stock_code="002415", stock_name="海康威视",
                        sector="AI算力", current_price=85.0)

        data = client.get("/api/dashboard/risk-analysis", params={"portfolio_id": portfolio["id"]}).json()["data"]

        assert data["distribution"] == {"low": 1, "medium": 0, "high": 1}
        assert data["concentration_risk"] == pytest.approx((112 / 197) ** 2 + (85 / 197) ** 2)
        assert [a["type"] for a in data["alerts"]] == ["stop_loss"]
        assert data["metrics"]["total_value"] == pytest.approx(19700.0)

    def test_unfiltered_alerts_keep_their_portfolio(self, client, portfolio):
        other = create_portfolio(client, name="第二组合")
        create_position(client, portfolio["id"], current_price=85.0)
        create_position(client, other["id"], stock_code="002415", stock_name="海康威视",
                        sector="AI算力", current_price=80.0)

        data = client.get("/api/dashboard/risk-analysis").json()["data"]

        assert data["metrics"] is None
        assert {(a["stock_code"], a["portfolio_id"]) for a in data["alerts"]} == {
            ("300750", portfolio["id"]),
            ("002415", other["id"]),
        }
