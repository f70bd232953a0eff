"""
Risk Service

Loads portfolios from the database and runs the scoring core over them.
Used by the risk API routes and the periodic monitoring task.
"""
import time
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from config.settings import get_risk_limits, get_settings
from growguard.core.alerts import AlertGenerator, RebalanceSuggestion, StopLossAlert, TakeProfitAlert
from growguard.core.exceptions import GrowGuardError, NotFoundError
from growguard.core.portfolio_risk import PortfolioRiskAggregator, RiskAssessment
from growguard.core.position_risk import PositionRisk, PositionRiskScorer
from growguard.models.portfolios import Portfolio
from growguard.models.positions import Position
from growguard.utils import metrics
from growguard.utils.logging import get_logger

logger = get_logger(__name__)

class RiskService:
    """Risk assessment, alerts and rebalance suggestions for stored portfolios."""

    def __init__(self, db: Session, level_source: Optional[str] = None, limits: Optional[Dict] = None):
        self.db = db
        limits = limits or get_risk_limits()
        self.scorer = PositionRiskScorer(limits)
        self.aggregator = PortfolioRiskAggregator(
            limits,
            level_source=level_source or get_settings().RISK_LEVEL_SOURCE,
            scorer=self.scorer
        )
        self.alerts = AlertGenerator(limits)

    def _load(self, portfolio_id: str) -> Tuple[Portfolio, List[Position]]:
        portfolio = self.db.query(Portfolio).filter(Portfolio.id == portfolio_id).first()
        if not portfolio:
            raise NotFoundError(f"投资组合不存在: {portfolio_id}")
        positions = self.db.query(Position).filter(
            Position.portfolio_id == portfolio_id
        ).order_by(Position.created_at).all()
        return portfolio, positions

    def assess_portfolio(self, portfolio_id: str, now: Optional[datetime] = None) -> RiskAssessment:
        _, positions = self._load(portfolio_id)

        started = time.perf_counter()
        assessment = self.aggregator.assess(portfolio_id, positions, now)
        metrics.risk_assessment_time.observe(time.perf_counter() - started)
        metrics.record_risk_assessment(
            portfolio_id, assessment.overall_risk_level, assessment.weighted_risk_score
        )
        return assessment

    def assess_position(self, position_id: str, now: Optional[datetime] = None) -> PositionRisk:
        position = self.db.query(Position).filter(Position.id == position_id).first()
        if not position:
            raise NotFoundError(f"持仓不存在: {position_id}")
        return self.scorer.score(position, now)

    def check_alerts(self, portfolio_id: str) -> Tuple[List[StopLossAlert], List[TakeProfitAlert]]:
        _, positions = self._load(portfolio_id)
        stop_loss_alerts, take_profit_alerts = self.alerts.check_stop_loss_take_profit(portfolio_id, positions)
        if stop_loss_alerts:
            metrics.record_alert('stop_loss', len(stop_loss_alerts))
        if take_profit_alerts:
            metrics.record_alert('take_profit', len(take_profit_alerts))
        return stop_loss_alerts, take_profit_alerts

    def rebalance_suggestions(self, portfolio_id: str) -> List[RebalanceSuggestion]:
        _, positions = self._load(portfolio_id)
        suggestions = self.alerts.rebalance_suggestions(positions)
        for suggestion in suggestions:
            metrics.record_rebalance_suggestion(suggestion.type)
        return suggestions

    def monitor_all(self) -> Dict[str, Dict]:
        """
        Reassess every portfolio and check its alerts.

        Returns:
            portfolio_id -> {risk_level, risk_score, stop_loss_alerts, take_profit_alerts},
            or {error, message} for a portfolio that could not be scored
        """
        summary = {}
        portfolio_ids = [row.id for row in self.db.query(Portfolio.id).all()]

        for portfolio_id in portfolio_ids:
            try:
                assessment = self.assess_portfolio(portfolio_id)
                stop_loss_alerts, take_profit_alerts = self.check_alerts(portfolio_id)
            except GrowGuardError as e:
                logger.error("Risk monitoring failed", portfolio_id=portfolio_id, kind=e.kind, error=e.message)
                summary[portfolio_id] = {'error': e.kind, 'message': e.message}
                continue

            for alert in stop_loss_alerts:
                logger.warning(
                    "Stop-loss triggered",
                    portfolio_id=portfolio_id,
                    stock_code=alert.stock_code,
                    current_price=alert.current_price,
                    stop_loss=alert.stop_loss_price
                )
            for alert in take_profit_alerts:
                logger.info(
                    "Take-profit triggered",
                    portfolio_id=portfolio_id,
                    stock_code=alert.stock_code,
                    current_price=alert.current_price,
                    take_profit=alert.take_profit_price
                )

            summary[portfolio_id] = {
                'risk_level': assessment.overall_risk_level,
                'risk_score': assessment.weighted_risk_score,
                'stop_loss_alerts': len(stop_loss_alerts),
                'take_profit_alerts': len(take_profit_alerts),
            }

        logger.info(f"Risk monitoring complete for {len(summary)} portfolios")
        return summary
