"""
Portfolio Risk Aggregator

Combines position and sector risk into a single portfolio assessment.
Assessments are always recomputed from the positions passed in; nothing is cached.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from config.settings import get_risk_limits
from growguard.core.position_risk import PositionRisk, PositionRiskScorer
from growguard.core.sector_risk import SectorRisk, SectorRiskAggregator
from growguard.utils.logging import get_logger

logger = get_logger(__name__)

LEVEL_SOURCES = ('stored', 'computed')

@dataclass
class RiskAssessment:
    """Portfolio-level risk assessment (computed, never persisted)."""
    portfolio_id: str
    overall_risk_level: str
    weighted_risk_score: float
    risk_distribution: Dict[str, int]
    sector_risks: List[SectorRisk]
    position_risks: List[PositionRisk]
    recommendations: List[str]
    risk_factors: List[str] = field(default_factory=list)
    last_updated: datetime = field(default_factory=datetime.utcnow)

class PortfolioRiskAggregator:
    """
    Produces a RiskAssessment for a list of positions.

    Risk distribution and sector rollups read each position's stored risk_level
    tag by default. With level_source='computed' they use the level the
    position scorer just assigned instead.
    """

    def __init__(
        self,
        limits: Optional[Dict] = None,
        level_source: str = 'stored',
        scorer: Optional[PositionRiskScorer] = None,
        sector_aggregator: Optional[SectorRiskAggregator] = None
    ):
        if level_source not in LEVEL_SOURCES:
            raise ValueError(f"level_source must be one of {LEVEL_SOURCES}, got {level_source!r}")
        limits = limits or get_risk_limits()
        self.limits = limits['portfolio']
        self.level_source = level_source
        self.scorer = scorer or PositionRiskScorer(limits)
        self.sector_aggregator = sector_aggregator or SectorRiskAggregator(limits)

    def assess(self, portfolio_id: str, positions, now: Optional[datetime] = None) -> RiskAssessment:
        """
        Assess a portfolio.

        Args:
            portfolio_id: Portfolio identifier
            positions: Position-like objects of the portfolio
            now: Reference time (holding periods and last_updated)

        Returns:
            RiskAssessment; an empty or zero-weight portfolio scores 0.0
        """
        now = now or datetime.utcnow()
        positions = list(positions)
        position_risks = self.scorer.score_all(positions, now)

        weighted_score = self.weighted_score(positions, position_risks)
        overall_level = self.classify(weighted_score)

        computed_levels = {risk.position_id: risk.risk_level for risk in position_risks}
        levels = computed_levels if self.level_source == 'computed' else None

        distribution = self.risk_distribution(positions, levels)
        sector_risks = self.sector_aggregator.aggregate(positions, levels)

        assessment = RiskAssessment(
            portfolio_id=portfolio_id,
            overall_risk_level=overall_level,
            weighted_risk_score=weighted_score,
            risk_distribution=distribution,
            sector_risks=sector_risks,
            position_risks=position_risks,
            recommendations=self._recommendations(weighted_score, distribution, sector_risks),
            risk_factors=self._risk_factors(positions, position_risks, sector_risks),
            last_updated=now,
        )

        logger.info(
            "Portfolio risk assessed",
            portfolio_id=portfolio_id,
            positions=len(positions),
            score=weighted_score,
            level=overall_level
        )
        return assessment

    def weighted_score(self, positions, position_risks: List[PositionRisk]) -> float:
        """Σ(score × weight) / Σ weight, or 0.0 when the total weight is zero."""
        total_weight = sum(position.weight or 0.0 for position in positions)
        if total_weight <= 0:
            return 0.0
        weighted = sum(
            risk.total_risk_score * (position.weight or 0.0)
            for position, risk in zip(positions, position_risks)
        )
        return round(weighted / total_weight, 2)

    def risk_distribution(self, positions, levels: Optional[Dict[str, str]] = None) -> Dict[str, int]:
        distribution = {'low': 0, 'medium': 0, 'high': 0}
        for position in positions:
            if levels and position.id in levels:
                level = levels[position.id]
            else:
                level = position.risk_level or 'medium'
            if level in distribution:
                distribution[level] += 1
        return distribution

    def classify(self, score: float) -> str:
        if score > self.limits['high_threshold']:
            return 'high'
        if score > self.limits['medium_threshold']:
            return 'medium'
        return 'low'

    def _recommendations(
        self,
        score: float,
        distribution: Dict[str, int],
        sector_risks: List[SectorRisk]
    ) -> List[str]:
        recommendations = []

        if score > self.limits['high_threshold']:
            recommendations.append('组合整体风险较高，建议降低仓位或调整配置')
        elif score > self.limits['medium_threshold']:
            recommendations.append('组合风险中等，建议重点关注高风险持仓')

        if distribution['high'] > distribution['low']:
            recommendations.append('高风险持仓多于低风险持仓，建议优化持仓结构')

        high_sectors = [sector.sector for sector in sector_risks if sector.risk_level == 'high']
        if high_sectors:
            recommendations.append(f"高风险赛道：{'、'.join(high_sectors)}，建议重新评估赛道配置")

        if not recommendations:
            recommendations.append('风险可控，保持当前配置策略')

        return recommendations

    def _risk_factors(self, positions, position_risks: List[PositionRisk], sector_risks: List[SectorRisk]) -> List[str]:
        factors = []

        high_count = sum(1 for risk in position_risks if risk.risk_level == 'high')
        if high_count > 0:
            factors.append(f"存在{high_count}只高风险股票")

        if any(sector.total_weight > self.limits['sector_factor_weight'] for sector in sector_risks):
            factors.append('单一赛道权重过高')

        total_pnl = sum(
            (position.current_price - position.avg_cost) * (position.quantity or 0)
            for position in positions
        )
        if total_pnl < 0:
            factors.append('投资组合整体亏损')

        return factors
