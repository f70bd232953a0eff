"""
Position Risk Scorer

Scores a single holding along three weighted dimensions:
- Price risk (0.4): distance to the stop-loss / take-profit levels and loss versus cost
- Concentration risk (0.3): portfolio weight of the holding
- Volatility risk (0.3): stored risk tag adjusted by holding period

The total is not clamped. With the configured thresholds the reachable range
for a valid position is 3.0 to 64.5.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from config.settings import get_risk_limits
from growguard.core.exceptions import DivisionByZeroError, InvalidInputError
from growguard.utils.constants import STATUS_ORDER
from growguard.utils.logging import get_logger

logger = get_logger(__name__)

@dataclass
class RiskComponent:
    """One dimension of a position's risk."""
    score: float
    status: str
    details: str = ''

@dataclass
class PositionRisk:
    """Scored risk for a single position."""
    position_id: str
    stock_code: str
    stock_name: str
    sector: str
    weight: float
    risk_level: str
    total_risk_score: float
    price_risk: RiskComponent
    concentration_risk: RiskComponent
    volatility_risk: RiskComponent
    holding_days: int
    recommendations: List[str] = field(default_factory=list)


def escalate(current: str, candidate: str) -> str:
    """Return the more severe of two statuses. Never downgrades."""
    if STATUS_ORDER.index(candidate) > STATUS_ORDER.index(current):
        return candidate
    return current


class PositionRiskScorer:
    """
    Computes PositionRisk for positions.

    Accepts any object exposing the Position attributes (ORM rows or plain
    dataclasses), so scoring never touches the database.
    """

    RECOMMENDATIONS = {
        'price_danger': '价格逼近止损位，建议立即减仓或设置止损',
        'price_warning': '价格风险上升，建议密切关注止损位',
        'concentration_danger': '仓位集中度过高，建议适当减仓分散投资',
        'concentration_warning': '仓位偏重，注意控制单一持仓风险',
        'volatility_danger': '波动性较大，建议设置合理的止损止盈点',
        'high_risk': '整体风险较高，建议谨慎操作，控制仓位',
        'controlled': '风险可控，保持当前策略',
    }

    def __init__(self, limits: Optional[Dict] = None):
        self.limits = (limits or get_risk_limits())['position']
        self.weights = self.limits['weights']

    def score(self, position, now: Optional[datetime] = None) -> PositionRisk:
        """
        Score one position.

        Args:
            position: Position-like object
            now: Reference time for the holding period (defaults to utcnow)

        Returns:
            PositionRisk with sub-scores, level and recommendations

        Raises:
            DivisionByZeroError: avg_cost is zero
            InvalidInputError: avg_cost or current_price is negative
        """
        self._validate(position)
        now = now or datetime.utcnow()

        price_risk = self.price_risk(position)
        concentration_risk = self.concentration_risk(position.weight or 0.0)
        holding_days = self.holding_days(position, now)
        volatility_risk = self.volatility_risk(position.risk_level, holding_days)

        total = round(
            price_risk.score * self.weights['price'] +
            concentration_risk.score * self.weights['concentration'] +
            volatility_risk.score * self.weights['volatility'],
            2
        )
        risk_level = self.classify(total)

        return PositionRisk(
            position_id=position.id,
            stock_code=position.stock_code,
            stock_name=position.stock_name,
            sector=position.sector,
            weight=position.weight or 0.0,
            risk_level=risk_level,
            total_risk_score=total,
            price_risk=price_risk,
            concentration_risk=concentration_risk,
            volatility_risk=volatility_risk,
            holding_days=holding_days,
            recommendations=self._recommendations(
                price_risk, concentration_risk, volatility_risk, risk_level
            ),
        )

    def score_all(self, positions, now: Optional[datetime] = None) -> List[PositionRisk]:
        now = now or datetime.utcnow()
        return [self.score(position, now) for position in positions]

    def price_risk(self, position) -> RiskComponent:
        """Score proximity to stop-loss / take-profit and loss versus cost."""
        cfg = self.limits['price']
        avg_cost = position.avg_cost
        current = position.current_price

        score = 0.0
        status = 'safe'
        notes = []

        if position.stop_loss is not None:
            loss_distance = (current - position.stop_loss) / avg_cost * 100
            if loss_distance <= cfg['stop_danger_distance']:
                score += cfg['stop_danger_score']
                status = escalate(status, 'danger')
                notes.append(f"距止损位{loss_distance:.1f}%")
            elif loss_distance <= cfg['stop_warning_distance']:
                score += cfg['stop_warning_score']
                status = escalate(status, 'warning')
                notes.append(f"距止损位{loss_distance:.1f}%")

        if position.take_profit is not None:
            profit_distance = (position.take_profit - current) / avg_cost * 100
            if profit_distance <= cfg['take_profit_distance']:
                score += cfg['take_profit_score']
                if profit_distance <= cfg['take_profit_warning_distance']:
                    status = escalate(status, 'warning')
                else:
                    status = escalate(status, 'info')
                notes.append(f"距止盈位{profit_distance:.1f}%")

        current_return = (current - avg_cost) / avg_cost * 100
        if current_return < 0:
            score += min(abs(current_return) * cfg['loss_multiplier'], cfg['loss_cap'])
            status = escalate(status, 'warning')
            notes.append(f"当前亏损{abs(current_return):.1f}%")

        return RiskComponent(
            score=round(score, 4),
            status=status,
            details='，'.join(notes) or '价格处于安全区间'
        )

    def concentration_risk(self, weight: float) -> RiskComponent:
        """Score portfolio weight. Thresholds are strict greater-than."""
        for tier in self.limits['concentration']:
            if weight > tier['above']:
                return RiskComponent(
                    score=tier['score'],
                    status=tier['status'],
                    details=f"仓位占比{weight * 100:.1f}%"
                )
        floor = self.limits['concentration_floor']
        return RiskComponent(
            score=floor['score'],
            status=floor['status'],
            details=f"仓位占比{weight * 100:.1f}%"
        )

    def volatility_risk(self, risk_level: Optional[str], holding_days: int) -> RiskComponent:
        """Score volatility from the stored risk tag and the holding period."""
        cfg = self.limits['volatility']
        base = cfg['base'].get(risk_level or 'medium', cfg['base']['medium'])
        score = base['score']
        notes = [f"风险标签{risk_level or 'medium'}"]

        if holding_days < cfg['short_term_days']:
            score += cfg['short_term_bonus']
            notes.append(f"持有{holding_days}天，短期持仓波动较大")
        elif holding_days > cfg['stable_days']:
            score = max(score - cfg['stable_discount'], 0)
            notes.append(f"持有{holding_days}天，长期持仓相对稳定")

        return RiskComponent(score=score, status=base['status'], details='，'.join(notes))

    def holding_days(self, position, now: datetime) -> int:
        """Whole days since the position's last update."""
        reference = position.last_update or getattr(position, 'created_at', None)
        if reference is None:
            return 0
        return (now - reference).days

    def classify(self, total_score: float) -> str:
        thresholds = self.limits['level_thresholds']
        if total_score > thresholds['high']:
            return 'high'
        if total_score > thresholds['medium']:
            return 'medium'
        return 'low'

    def _validate(self, position) -> None:
        if position.avg_cost is None or position.avg_cost == 0:
            logger.warning("Position has zero average cost", position_id=position.id)
            raise DivisionByZeroError(f"持仓{position.stock_code}平均成本为0，无法计算风险")
        if position.avg_cost < 0:
            raise InvalidInputError(f"持仓{position.stock_code}平均成本必须为正数")
        if position.current_price is None or position.current_price <= 0:
            raise InvalidInputError(f"持仓{position.stock_code}当前价格必须为正数")

    def _recommendations(
        self,
        price_risk: RiskComponent,
        concentration_risk: RiskComponent,
        volatility_risk: RiskComponent,
        risk_level: str
    ) -> List[str]:
        recommendations = []

        if price_risk.status == 'danger':
            recommendations.append(self.RECOMMENDATIONS['price_danger'])
        elif price_risk.status == 'warning':
            recommendations.append(self.RECOMMENDATIONS['price_warning'])

        if concentration_risk.status == 'danger':
            recommendations.append(self.RECOMMENDATIONS['concentration_danger'])
        elif concentration_risk.status == 'warning':
            recommendations.append(self.RECOMMENDATIONS['concentration_warning'])

        if volatility_risk.status == 'danger':
            recommendations.append(self.RECOMMENDATIONS['volatility_danger'])

        if risk_level == 'high':
            recommendations.append(self.RECOMMENDATIONS['high_risk'])

        if not recommendations:
            recommendations.append(self.RECOMMENDATIONS['controlled'])

        return recommendations
