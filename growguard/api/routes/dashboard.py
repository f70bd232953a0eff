"""
Dashboard endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from growguard.api.responses import ok
from growguard.api.routes.transactions import TransactionResponse
from growguard.core.alerts import AlertGenerator
from growguard.core.portfolio_manager import PortfolioManager
from growguard.core.report_generator import calculate_metrics
from growguard.models.base import get_db

router = APIRouter()

@router.get("/overview")
def overview(db: Session = Depends(get_db)):
    """
    Totals across portfolios, per-sector stats and the latest transactions.
    """
    data = PortfolioManager(db).overview()
    data['recent_transactions'] = [
        TransactionResponse.model_validate(t) for t in data['recent_transactions']
    ]
    return ok(data, message="Dashboard概览数据")

@router.get("/risk-analysis")
def risk_analysis(
    portfolio_id: Optional[str] = Query(None, description="Restrict to one portfolio"),
    db: Session = Depends(get_db)
):
    """
    P&L distribution, concentration (HHI) and price alerts.

    Positions are bucketed by unrealized P&L percent: above 10 is 'high',
    above 5 is 'medium', anything else 'low'.
    """
    manager = PortfolioManager(db)
    positions = manager.list_positions(portfolio_id)

    distribution = {'low': 0, 'medium': 0, 'high': 0}
    for position in positions:
        pnl_percent = position.unrealized_pnl_percent or 0.0
        if pnl_percent > 10:
            distribution['high'] += 1
        elif pnl_percent > 5:
            distribution['medium'] += 1
        else:
            distribution['low'] += 1

    concentration = sum((position.weight or 0.0) ** 2 for position in positions)

    # Alerts carry the id of the portfolio each position belongs to
    by_portfolio = {}
    for position in positions:
        by_portfolio.setdefault(position.portfolio_id, []).append(position)

    generator = AlertGenerator()
    stop_loss_alerts, take_profit_alerts = [], []
    for pid, group in by_portfolio.items():
        stops, takes = generator.check_stop_loss_take_profit(pid, group)
        stop_loss_alerts.extend(stops)
        take_profit_alerts.extend(takes)
    alerts = [
        {'type': 'stop_loss', 'portfolio_id': a.portfolio_id, 'level': a.alert_level,
         'stock_code': a.stock_code, 'stock_name': a.stock_name, 'message': a.action}
        for a in stop_loss_alerts
    ] + [
        {'type': 'take_profit', 'portfolio_id': a.portfolio_id, 'level': a.alert_level,
         'stock_code': a.stock_code, 'stock_name': a.stock_name, 'message': a.action}
        for a in take_profit_alerts
    ]

    metrics = None
    if portfolio_id:
        metrics = calculate_metrics(manager.get_portfolio(portfolio_id), positions)

    return ok({
        'metrics': metrics,
        'distribution': distribution,
        'concentration_risk': concentration,
        'alerts': alerts,
    }, message="风险分析数据")
