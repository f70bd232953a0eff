"""Tests for the periodic risk monitoring task."""

from growguard.core.portfolio_manager import PortfolioManager
from growguard.models.positions import Position
from growguard.scheduler import tasks


def test_monitor_portfolio_risk(monkeypatch, db, session_factory):
    manager = PortfolioManager(db)
    falling = manager.create_portfolio("下跌组合")
    manager.add_position(falling.id, "300750", "宁德时代", "新能源", 100, 100.0, current_price=80.0)
    calm = manager.create_portfolio("平稳组合")
    manager.add_position(calm.id, "600519", "贵州茅台", "高端制造", 10, 1800.0, risk_level="low")

    monkeypatch.setattr(tasks.base, "SessionLocal", session_factory)

    summary = tasks.monitor_portfolio_risk.apply().get()

    assert set(summary) == {falling.id, calm.id}
    assert summary[falling.id]["stop_loss_alerts"] == 1
    assert summary[falling.id]["take_profit_alerts"] == 0
    assert summary[calm.id]["stop_loss_alerts"] == 0
    assert summary[calm.id]["risk_level"] == "low"


def test_monitor_without_portfolios(monkeypatch, session_factory):
    monkeypatch.setattr(tasks.base, "SessionLocal", session_factory)

    assert tasks.monitor_portfolio_risk.apply().get() == {}


def test_monitor_continues_past_a_failing_portfolio(monkeypatch, db, session_factory):
    manager = PortfolioManager(db)
    calm = manager.create_portfolio("平稳组合")
    manager.add_position(calm.id, "600519", "贵州茅台", "高端制造", 10, 1800.0, risk_level="low")
    broken = manager.create_portfolio("异常组合")
    # Written directly: the manager refuses a zero average cost
    db.add(Position(
        portfolio_id=broken.id, stock_code="300750", stock_name="宁德时代", sector="新能源",
        quantity=100, avg_cost=0.0, current_price=10.0, market_value=1000.0, weight=1.0,
    ))
    db.commit()

    monkeypatch.setattr(tasks.base, "SessionLocal", session_factory)

    summary = tasks.monitor_portfolio_risk.apply().get()

    assert summary[broken.id]["error"] == "DIVISION_BY_ZERO"
    assert "300750" in summary[broken.id]["message"]
    assert summary[calm.id]["risk_level"] == "low"
    assert summary[calm.id]["stop_loss_alerts"] == 0
