"""Tests for report generation and export."""

import csv
import io
import json
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from growguard.core.exceptions import InvalidInputError, NotFoundError
from growguard.core.portfolio_manager import PortfolioManager
from growguard.core.portfolio_risk import PortfolioRiskAggregator
from growguard.core.report_generator import (
    ReportGenerator,
    annualized_return,
    calculate_metrics,
    render_risk_report,
)


@pytest.fixture
def manager(db):
    return PortfolioManager(db)


@pytest.fixture
def generator(db):
    return ReportGenerator(db)


@pytest.fixture
def portfolio(manager):
    portfolio = manager.create_portfolio("长盈智投组合")
    manager.add_position(portfolio.id, "002594", "比亚迪", "车与智能驾驶", 1000, 180.5, current_price=185.2)
    return manager.get_portfolio(portfolio.id)


class TestMetrics:

    def test_single_position(self, portfolio, manager, now):
        metrics = calculate_metrics(portfolio, manager.list_positions(portfolio.id), now)

        assert metrics["total_value"] == pytest.approx(185200.0)
        assert metrics["total_return"] == pytest.approx(4.7 / 180.5 * 100)
        assert metrics["beta"] == pytest.approx(2.3)
        assert metrics["volatility"] == pytest.approx(18.0)
        assert metrics["tracking_error"] == 0.0
        assert metrics["information_ratio"] == 0.0
        assert metrics["sharpe_ratio"] == pytest.approx((metrics["total_return"] - 3.0) / 18.0)

    def test_two_positions_tracking_error(self, now):
        portfolio = SimpleNamespace(
            total_value=100.0, total_cost=100.0, total_pnl=0.0, total_pnl_percent=0.0,
            max_drawdown=0.05, created_at=now - timedelta(days=10),
        )
        positions = [
            SimpleNamespace(risk_level="high", sector="AI算力", weight=0.6),
            SimpleNamespace(risk_level="low", sector="军工", weight=0.4),
        ]

        metrics = calculate_metrics(portfolio, positions, now)

        assert metrics["tracking_error"] == pytest.approx((0.36 + 0.16) ** 0.5 * 15)
        assert metrics["volatility"] == pytest.approx(0.6 * 25 + 0.4 * 12)
        assert metrics["beta"] == pytest.approx(1 + 0.6 * 1.5 + 0.4 * 1.0)
        assert metrics["max_drawdown"] == pytest.approx(5.0)
        assert metrics["annualized_return"] == 0.0

    def test_empty_portfolio(self, now):
        portfolio = SimpleNamespace(
            total_value=0.0, total_cost=0.0, total_pnl=0.0, total_pnl_percent=0.0,
            max_drawdown=0.0, created_at=now,
        )

        metrics = calculate_metrics(portfolio, [], now)

        assert metrics["volatility"] == 0.0
        assert metrics["sharpe_ratio"] == 0.0
        assert metrics["beta"] == 1.0


class TestAnnualizedReturn:

    def test_full_year_is_unchanged(self):
        start = datetime(2023, 1, 1)

        assert annualized_return(10.0, start, start + timedelta(days=365)) == pytest.approx(10.0)

    def test_under_one_day(self):
        start = datetime(2024, 1, 1)

        assert annualized_return(10.0, start, start + timedelta(hours=12)) == 0.0

    def test_missing_start(self):
        assert annualized_return(10.0, None, datetime(2024, 1, 1)) == 0.0

    def test_overflow_gives_zero(self):
        start = datetime(2024, 1, 1)

        assert annualized_return(1e6, start, start + timedelta(days=1)) == 0.0


class TestGenerate:

    def test_closing_report(self, generator, portfolio, now):
        report = generator.generate(portfolio.id, "closing", now=now)

        assert report.type == "CLOSING"
        assert report.title == "长盈智投组合 - 收盘报告 2024-06-01"
        assert "持仓1只" in report.summary
        assert report.key_metrics["beta"] == pytest.approx(2.3)
        assert "止损止盈预警" not in report.content
        assert "比亚迪(002594)" in report.content
        assert report.recommendations

    def test_alert_report(self, generator, manager, portfolio, now):
        manager.refresh_prices([{"stock_code": "002594", "current_price": 150.0}])

        report = generator.generate(portfolio.id, "ALERT", now=now)

        assert "止损止盈预警:" in report.content
        assert "[止损] 比亚迪(002594)" in report.content
        assert "风险评估报告" in report.content

    def test_invalid_type(self, generator, portfolio):
        with pytest.raises(InvalidInputError):
            generator.generate(portfolio.id, "WEEKLY")

    def test_unknown_portfolio(self, generator):
        with pytest.raises(NotFoundError):
            generator.generate("missing")

    def test_list_and_get(self, generator, portfolio, now):
        morning = generator.generate(portfolio.id, "MORNING", now=now)
        generator.generate(portfolio.id, "CLOSING", now=now + timedelta(hours=6))

        assert [r.type for r in generator.list_reports(portfolio.id)] == ["CLOSING", "MORNING"]
        assert [r.id for r in generator.list_reports(type="morning")] == [morning.id]
        assert generator.get_report(morning.id).title == morning.title
        with pytest.raises(NotFoundError):
            generator.get_report("missing")


class TestExport:

    @pytest.fixture
    def report(self, generator, portfolio, now):
        return generator.generate(portfolio.id, "CLOSING", now=now)

    def test_json(self, generator, report):
        payload = json.loads(generator.export(report, "json"))

        assert payload["id"] == report.id
        assert payload["key_metrics"]["beta"] == pytest.approx(2.3)
        assert payload["created_at"] == "2024-06-01T10:00:00"

    def test_html_escapes_content(self, generator, report):
        document = generator.export(report, "HTML")

        assert document.startswith("<!DOCTYPE html>")
        assert "<title>长盈智投组合 - 收盘报告 2024-06-01</title>" in document

    def test_csv(self, generator, report):
        rows = list(csv.reader(io.StringIO(generator.export(report, "csv"))))

        assert rows[0] == ["字段", "值"]
        assert ["类型", "CLOSING"] in rows

    def test_text(self, generator, report):
        text = generator.export(report, "text")

        assert text.startswith(report.title)
        assert report.content in text

    def test_unsupported_format(self, generator, report):
        with pytest.raises(InvalidInputError):
            generator.export(report, "pdf")


def test_portfolio_csv(generator, manager, portfolio):
    manager.record_transaction(portfolio.id, "002594", "比亚迪", "SELL", 100, 190.0, date=datetime(2024, 5, 2))

    rows = list(csv.reader(io.StringIO(generator.export_portfolio_csv(portfolio.id))))

    assert rows[0] == ["投资组合", "长盈智投组合"]
    assert any(row[:3] == ["002594", "比亚迪", "车与智能驾驶"] for row in rows)
    assert any(row[:2] == ["2024-05-02", "002594"] for row in rows)


def test_render_risk_report_for_empty_portfolio(now):
    assessment = PortfolioRiskAggregator().assess("p-empty", [], now)

    text = render_risk_report(assessment)

    assert text.startswith("风险评估报告\n")
    assert "总体风险评分: 0.00" in text
    assert "- 无持仓" in text
    assert "主要风险因素:\n- 无" in text
    assert "- 风险可控，保持当前配置策略" in text
