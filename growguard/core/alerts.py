"""
Alert & Rebalance Suggestion Generator

Single pass over positions producing stop-loss / take-profit alerts and
weight-based rebalance suggestions.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from config.settings import get_risk_limits
from growguard.core.exceptions import DivisionByZeroError
from growguard.utils.logging import get_logger

logger = get_logger(__name__)

@dataclass
class StopLossAlert:
    portfolio_id: str
    position_id: str
    stock_code: str
    stock_name: str
    current_price: float
    stop_loss_price: float
    unrealized_loss: float
    loss_percent: float
    alert_level: str = 'CRITICAL'
    action: str = '已触及止损位，建议按纪律执行止损'
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.utcnow)

@dataclass
class TakeProfitAlert:
    portfolio_id: str
    position_id: str
    stock_code: str
    stock_name: str
    current_price: float
    take_profit_price: float
    unrealized_profit: float
    profit_percent: float
    alert_level: str = 'STRONG'
    action: str = '已触及止盈位，建议分批止盈锁定收益'
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.utcnow)

@dataclass
class RebalanceSuggestion:
    """
    type is 'reduce' for an oversized position and 'diversify' for an
    oversized sector. Position fields are None for sector suggestions.
    """
    type: str
    current_weight: float
    suggested_weight: float
    reason: str
    sector: str
    position_id: Optional[str] = None
    stock_code: Optional[str] = None
    stock_name: Optional[str] = None


def _return_percent(position) -> float:
    if not position.avg_cost:
        raise DivisionByZeroError(f"持仓{position.stock_code}平均成本为0，无法计算收益率")
    return (position.current_price - position.avg_cost) / position.avg_cost * 100


def _unrealized_pnl(position) -> float:
    if position.unrealized_pnl is not None:
        return position.unrealized_pnl
    return (position.current_price - position.avg_cost) * position.quantity


class AlertGenerator:
    """Generates price alerts and rebalance suggestions for a portfolio."""

    def __init__(self, limits: Optional[Dict] = None):
        self.limits = (limits or get_risk_limits())['rebalance']

    def check_stop_loss_take_profit(
        self,
        portfolio_id: str,
        positions
    ) -> Tuple[List[StopLossAlert], List[TakeProfitAlert]]:
        """
        Compare each position's current price with its static thresholds.

        Triggers are inclusive (current <= stop_loss, current >= take_profit) and
        independent, so one position can raise both alerts.
        """
        stop_loss_alerts = []
        take_profit_alerts = []

        for position in positions:
            if position.stop_loss is not None and position.current_price <= position.stop_loss:
                stop_loss_alerts.append(StopLossAlert(
                    portfolio_id=portfolio_id,
                    position_id=position.id,
                    stock_code=position.stock_code,
                    stock_name=position.stock_name,
                    current_price=position.current_price,
                    stop_loss_price=position.stop_loss,
                    unrealized_loss=_unrealized_pnl(position),
                    loss_percent=round(_return_percent(position), 2),
                ))

            if position.take_profit is not None and position.current_price >= position.take_profit:
                take_profit_alerts.append(TakeProfitAlert(
                    portfolio_id=portfolio_id,
                    position_id=position.id,
                    stock_code=position.stock_code,
                    stock_name=position.stock_name,
                    current_price=position.current_price,
                    take_profit_price=position.take_profit,
                    unrealized_profit=_unrealized_pnl(position),
                    profit_percent=round(_return_percent(position), 2),
                ))

        if stop_loss_alerts or take_profit_alerts:
            logger.warning(
                "Price alerts triggered",
                portfolio_id=portfolio_id,
                stop_loss=len(stop_loss_alerts),
                take_profit=len(take_profit_alerts)
            )

        return stop_loss_alerts, take_profit_alerts

    def rebalance_suggestions(self, positions) -> List[RebalanceSuggestion]:
        """Suggest trimming oversized positions and diversifying oversized sectors."""
        suggestions = []
        sector_weights: Dict[str, float] = {}

        for position in positions:
            weight = position.weight or 0.0
            sector_weights[position.sector] = sector_weights.get(position.sector, 0.0) + weight

            if weight > self.limits['max_position_weight']:
                suggestions.append(RebalanceSuggestion(
                    type='reduce',
                    current_weight=weight,
                    suggested_weight=self.limits['position_target_weight'],
                    reason=(
                        f"{position.stock_name}仓位{weight * 100:.1f}%超过"
                        f"{self.limits['max_position_weight'] * 100:.0f}%上限，"
                        f"建议减持至{self.limits['position_target_weight'] * 100:.0f}%"
                    ),
                    sector=position.sector,
                    position_id=position.id,
                    stock_code=position.stock_code,
                    stock_name=position.stock_name,
                ))

        for sector, weight in sector_weights.items():
            if weight > self.limits['max_sector_weight']:
                suggestions.append(RebalanceSuggestion(
                    type='diversify',
                    current_weight=weight,
                    suggested_weight=self.limits['sector_target_weight'],
                    reason=(
                        f"{sector}赛道权重{weight * 100:.1f}%超过"
                        f"{self.limits['max_sector_weight'] * 100:.0f}%上限，"
                        f"建议分散至{self.limits['sector_target_weight'] * 100:.0f}%"
                    ),
                    sector=sector,
                ))

        return suggestions
