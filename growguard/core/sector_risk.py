"""
Sector Risk Aggregator

Rolls positions up by sector into a weight-averaged risk score.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config.settings import get_risk_limits
from growguard.utils.logging import get_logger

logger = get_logger(__name__)

@dataclass
class SectorRisk:
    """Aggregated risk for one sector."""
    sector: str
    total_weight: float
    avg_risk_score: float
    position_count: int
    high_risk_count: int
    risk_level: str
    recommendations: List[str] = field(default_factory=list)

@dataclass
class _SectorAccumulator:
    total_weight: float = 0.0
    weighted_score: float = 0.0
    count: int = 0
    high_count: int = 0

class SectorRiskAggregator:
    """
    Groups positions by their exact sector label and scores each group.

    Each position contributes weight × level_score, where level_score maps the
    position's risk level (high/medium/low) to 80/50/20.
    """

    def __init__(self, limits: Optional[Dict] = None):
        self.limits = (limits or get_risk_limits())['sector']

    def aggregate(self, positions, levels: Optional[Dict[str, str]] = None) -> List[SectorRisk]:
        """
        Aggregate positions into per-sector risk.

        Args:
            positions: Position-like objects
            levels: Optional position_id -> risk level override; the stored
                risk_level tag is used when absent

        Returns:
            SectorRisk list in first-seen sector order
        """
        level_scores = self.limits['level_scores']
        groups: Dict[str, _SectorAccumulator] = {}

        for position in positions:
            level = self._level_for(position, levels)
            weight = position.weight or 0.0
            acc = groups.setdefault(position.sector, _SectorAccumulator())
            acc.total_weight += weight
            acc.weighted_score += weight * level_scores.get(level, level_scores['medium'])
            acc.count += 1
            if level == 'high':
                acc.high_count += 1

        results = []
        for sector, acc in groups.items():
            avg_score = acc.weighted_score / acc.total_weight if acc.total_weight > 0 else 0.0
            high_ratio = acc.high_count / acc.count if acc.count > 0 else 0.0
            risk_level = self.classify(avg_score, high_ratio)
            results.append(SectorRisk(
                sector=sector,
                total_weight=acc.total_weight,
                avg_risk_score=round(avg_score, 2),
                position_count=acc.count,
                high_risk_count=acc.high_count,
                risk_level=risk_level,
                recommendations=self._recommendations(sector, acc.total_weight, high_ratio, risk_level),
            ))

        logger.debug("Sector risk aggregated", sectors=len(results))
        return results

    def classify(self, avg_score: float, high_ratio: float) -> str:
        if avg_score > self.limits['high_threshold'] or high_ratio > self.limits['high_ratio']:
            return 'high'
        if avg_score > self.limits['medium_threshold'] or high_ratio > self.limits['medium_ratio']:
            return 'medium'
        return 'low'

    def _level_for(self, position, levels: Optional[Dict[str, str]]) -> str:
        if levels and position.id in levels:
            return levels[position.id]
        return position.risk_level or 'medium'

    def _recommendations(self, sector: str, total_weight: float, high_ratio: float, risk_level: str) -> List[str]:
        recommendations = []

        if total_weight > self.limits['max_weight']:
            recommendations.append(f"{sector}赛道权重{total_weight * 100:.1f}%过高，建议分散到其他赛道")

        if high_ratio > self.limits['high_ratio']:
            recommendations.append(f"{sector}赛道高风险持仓占比过半，建议减持高风险个股")

        if risk_level == 'high':
            recommendations.append(f"{sector}赛道整体风险较高，建议重新评估该赛道配置")

        if not recommendations:
            recommendations.append(f"{sector}赛道风险可控")

        return recommendations
