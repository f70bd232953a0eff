"""
Risk scoring endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from growguard.api.responses import ok
from growguard.core.report_generator import render_risk_report
from growguard.core.risk_service import RiskService
from growguard.models.base import get_db

router = APIRouter()

@router.get("/portfolios/{portfolio_id}/assessment")
def portfolio_assessment(
    portfolio_id: str,
    level_source: Optional[str] = Query(None, pattern="^(stored|computed)$", description="Risk level used for rollups"),
    db: Session = Depends(get_db)
):
    """Full risk assessment: score, level, distribution, sector and position risks."""
    assessment = RiskService(db, level_source=level_source).assess_portfolio(portfolio_id)
    return ok(assessment)

@router.get("/portfolios/{portfolio_id}/alerts")
def portfolio_alerts(portfolio_id: str, db: Session = Depends(get_db)):
    stop_loss_alerts, take_profit_alerts = RiskService(db).check_alerts(portfolio_id)
    return ok({
        'stop_loss_alerts': stop_loss_alerts,
        'take_profit_alerts': take_profit_alerts,
    })

@router.get("/portfolios/{portfolio_id}/rebalance")
def portfolio_rebalance(portfolio_id: str, db: Session = Depends(get_db)):
    return ok(RiskService(db).rebalance_suggestions(portfolio_id))

@router.get("/portfolios/{portfolio_id}/report", response_class=PlainTextResponse)
def portfolio_risk_report(
    portfolio_id: str,
    level_source: Optional[str] = Query(None, pattern="^(stored|computed)$", description="Risk level used for rollups"),
    db: Session = Depends(get_db)
):
    """Plain-text risk report."""
    assessment = RiskService(db, level_source=level_source).assess_portfolio(portfolio_id)
    return PlainTextResponse(render_risk_report(assessment))

@router.get("/positions/{position_id}")
def position_risk(position_id: str, db: Session = Depends(get_db)):
    return ok(RiskService(db).assess_position(position_id))
