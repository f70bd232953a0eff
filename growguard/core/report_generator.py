"""
Report Generator

Builds persisted MORNING / CLOSING / ALERT portfolio reports and renders
reports and risk assessments for export.
"""
import csv
import html
import io
import json
import math
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from growguard.core.exceptions import InvalidInputError, NotFoundError
from growguard.core.portfolio_manager import PortfolioManager
from growguard.core.portfolio_risk import RiskAssessment
from growguard.core.risk_service import RiskService
from growguard.models.positions import Position
from growguard.models.reports import Report
from growguard.models.transactions import Transaction
from growguard.utils.constants import (
    BENCHMARK_RETURN,
    BENCHMARK_VOLATILITY,
    DEFAULT_QUERY_LIMIT,
    RISK_FREE_RATE,
    RISK_LEVEL_VOLATILITY,
    SECTOR_BETA,
    ExportFormat,
    ReportType,
)
from growguard.utils.formatting import format_currency, format_percentage, format_wan
from growguard.utils.logging import get_logger

logger = get_logger(__name__)

REPORT_TYPE_TEXT = {
    ReportType.MORNING.value: '晨报',
    ReportType.CLOSING.value: '收盘报告',
    ReportType.ALERT.value: '风险预警',
}

RISK_LEVEL_TEXT = {'low': '低风险', 'medium': '中风险', 'high': '高风险'}


def calculate_metrics(portfolio, positions, now: Optional[datetime] = None) -> Dict[str, float]:
    """
    Key performance figures for a portfolio.

    Volatility and beta are estimates from risk tags and sector multipliers,
    not from price history.
    """
    now = now or datetime.utcnow()
    total_return = portfolio.total_pnl_percent or 0.0

    volatility = sum(
        RISK_LEVEL_VOLATILITY.get(p.risk_level, RISK_LEVEL_VOLATILITY['medium']) * (p.weight or 0.0)
        for p in positions
    )
    beta = 1.0 + sum(SECTOR_BETA.get(p.sector, 1.0) * (p.weight or 0.0) for p in positions)

    if len(positions) > 1:
        hhi = sum((p.weight or 0.0) ** 2 for p in positions)
        tracking_error = math.sqrt(hhi) * BENCHMARK_VOLATILITY
    else:
        tracking_error = 0.0

    sharpe_ratio = (total_return - RISK_FREE_RATE) / volatility if volatility > 0 else 0.0
    information_ratio = (total_return - BENCHMARK_RETURN) / tracking_error if tracking_error > 0 else 0.0

    return {
        'total_value': portfolio.total_value or 0.0,
        'total_cost': portfolio.total_cost or 0.0,
        'total_pnl': portfolio.total_pnl or 0.0,
        'total_return': total_return,
        'annualized_return': annualized_return(total_return, portfolio.created_at, now),
        'max_drawdown': (portfolio.max_drawdown or 0.0) * 100,
        'volatility': volatility,
        'beta': beta,
        'sharpe_ratio': sharpe_ratio,
        'tracking_error': tracking_error,
        'information_ratio': information_ratio,
    }


def annualized_return(total_return: float, start: Optional[datetime], end: datetime) -> float:
    """Compound total_return (percent) to a yearly rate. Under one day held gives 0."""
    if start is None:
        return 0.0
    days = (end - start).total_seconds() / 86400
    if days < 1:
        return 0.0
    try:
        return ((1 + total_return / 100) ** (365 / days) - 1) * 100
    except OverflowError:
        logger.warning("Annualized return overflow", total_return=total_return, days=days)
        return 0.0


def render_risk_report(assessment: RiskAssessment) -> str:
    """Plain-text report for a risk assessment."""
    lines = [
        '风险评估报告',
        f"评估时间: {assessment.last_updated.strftime('%Y-%m-%d %H:%M:%S')}",
        f"总体风险评分: {assessment.weighted_risk_score:.2f}",
        f"总体风险等级: {RISK_LEVEL_TEXT.get(assessment.overall_risk_level, assessment.overall_risk_level)}",
        '',
        '风险分布:',
        f"- 低风险: {assessment.risk_distribution['low']}只",
        f"- 中风险: {assessment.risk_distribution['medium']}只",
        f"- 高风险: {assessment.risk_distribution['high']}只",
        '',
        '赛道风险:',
    ]
    for sector in assessment.sector_risks:
        lines.append(
            f"- {sector.sector}: 权重{format_percentage(sector.total_weight, 1)}，"
            f"风险评分{sector.avg_risk_score:.2f}，"
            f"{RISK_LEVEL_TEXT.get(sector.risk_level, sector.risk_level)}"
        )
    if not assessment.sector_risks:
        lines.append('- 无持仓')

    lines += ['', '主要风险因素:']
    lines += [f"- {factor}" for factor in assessment.risk_factors] or ['- 无']

    lines += ['', '风险控制建议:']
    lines += [f"- {recommendation}" for recommendation in assessment.recommendations]

    return '\n'.join(lines) + '\n'


class ReportGenerator:
    """Generates, stores and exports portfolio reports."""

    def __init__(self, db: Session):
        self.db = db
        self.manager = PortfolioManager(db)

    def list_reports(self, portfolio_id: Optional[str] = None, type: Optional[str] = None,
                     limit: int = DEFAULT_QUERY_LIMIT) -> List[Report]:
        query = self.db.query(Report)
        if portfolio_id:
            query = query.filter(Report.portfolio_id == portfolio_id)
        if type:
            query = query.filter(Report.type == type.upper())
        return query.order_by(desc(Report.created_at)).limit(limit).all()

    def get_report(self, report_id: str) -> Report:
        report = self.db.query(Report).filter(Report.id == report_id).first()
        if not report:
            raise NotFoundError(f"报告不存在: {report_id}")
        return report

    def generate(self, portfolio_id: str, report_type: str = ReportType.CLOSING.value,
                 now: Optional[datetime] = None) -> Report:
        """
        Build and persist a report.

        ALERT reports add the current stop-loss / take-profit triggers and the
        portfolio risk assessment to the usual content.
        """
        report_type = (report_type or '').upper()
        if report_type not in REPORT_TYPE_TEXT:
            raise InvalidInputError(f"报告类型无效: {report_type}")

        now = now or datetime.utcnow()
        portfolio = self.manager.get_portfolio(portfolio_id)
        positions = self.db.query(Position).filter(
            Position.portfolio_id == portfolio_id
        ).order_by(Position.created_at).all()
        transactions = self.db.query(Transaction).filter(
            Transaction.portfolio_id == portfolio_id
        ).order_by(desc(Transaction.date)).all()

        key_metrics = calculate_metrics(portfolio, positions, now)
        recommendations = self._recommendations(positions, key_metrics)

        sections = [
            self._summary_section(portfolio, positions, key_metrics),
            self._position_section(positions),
            self._transaction_section(transactions),
        ]

        if report_type == ReportType.ALERT.value:
            risk = RiskService(self.db)
            stop_loss_alerts, take_profit_alerts = risk.check_alerts(portfolio_id)
            assessment = risk.assess_portfolio(portfolio_id, now)
            sections.append(self._alert_section(stop_loss_alerts, take_profit_alerts))
            sections.append(render_risk_report(assessment))
            recommendations.extend(r for r in assessment.recommendations if r not in recommendations)

        sections.append('投资建议:\n' + '\n'.join(f"- {r}" for r in recommendations) + '\n')

        type_text = REPORT_TYPE_TEXT[report_type]
        summary = (
            f"{portfolio.name}{type_text}：总市值{format_wan(key_metrics['total_value'])}，"
            f"总收益率{key_metrics['total_return']:.2f}%，持仓{len(positions)}只"
        )

        report = Report(
            portfolio_id=portfolio_id,
            type=report_type,
            title=f"{portfolio.name} - {type_text} {now.strftime('%Y-%m-%d')}",
            content='\n'.join(sections),
            summary=summary,
            key_metrics={k: round(v, 4) for k, v in key_metrics.items()},
            recommendations=recommendations,
            created_at=now,
        )
        self.db.add(report)
        self.db.commit()
        self.db.refresh(report)

        logger.info("Report generated", report_id=report.id, portfolio_id=portfolio_id, type=report_type)
        return report

    def export(self, report: Report, fmt: str) -> str:
        fmt = (fmt or '').lower()
        if fmt == ExportFormat.HTML.value:
            return self._export_html(report)
        if fmt == ExportFormat.CSV.value:
            return self._export_csv(report)
        if fmt == ExportFormat.JSON.value:
            return json.dumps(self._as_dict(report), ensure_ascii=False, indent=2)
        if fmt == ExportFormat.TEXT.value:
            return f"{report.title}\n{'=' * 40}\n{report.summary}\n\n{report.content}"
        raise InvalidInputError(f"不支持的导出格式: {fmt}")

    def export_portfolio_csv(self, portfolio_id: str) -> str:
        """Positions followed by transactions, as one CSV document."""
        portfolio = self.manager.get_portfolio(portfolio_id)
        buffer = io.StringIO()
        writer = csv.writer(buffer)

        writer.writerow(['投资组合', portfolio.name])
        writer.writerow(['总市值', portfolio.total_value, '总成本', portfolio.total_cost,
                         '总盈亏', portfolio.total_pnl])
        writer.writerow([])
        writer.writerow(['股票代码', '股票名称', '赛道', '数量', '平均成本', '当前价格',
                         '市值', '浮动盈亏', '盈亏比例(%)', '权重', '止损价', '止盈价', '风险等级'])
        for p in self.manager.list_positions(portfolio_id):
            writer.writerow([p.stock_code, p.stock_name, p.sector, p.quantity, p.avg_cost,
                             p.current_price, p.market_value, p.unrealized_pnl,
                             round(p.unrealized_pnl_percent or 0.0, 2), round(p.weight or 0.0, 4),
                             p.stop_loss, p.take_profit, p.risk_level])
        writer.writerow([])
        writer.writerow(['日期', '股票代码', '股票名称', '类型', '数量', '价格', '金额', '手续费', '原因'])
        for t in self.db.query(Transaction).filter(
            Transaction.portfolio_id == portfolio_id
        ).order_by(desc(Transaction.date)).all():
            writer.writerow([t.date.strftime('%Y-%m-%d'), t.stock_code, t.stock_name, t.type,
                             t.quantity, t.price, t.amount, t.commission, t.reason])

        return buffer.getvalue()

    def _summary_section(self, portfolio, positions, m: Dict[str, float]) -> str:
        return '\n'.join([
            f"投资组合: {portfolio.name}",
            f"总市值: {format_currency(m['total_value'])}",
            f"总成本: {format_currency(m['total_cost'])}",
            f"总盈亏: {format_currency(m['total_pnl'])}",
            f"总收益率: {m['total_return']:.2f}%",
            f"年化收益率: {m['annualized_return']:.2f}%",
            f"最大回撤: {m['max_drawdown']:.2f}%",
            f"波动率: {m['volatility']:.2f}%",
            f"贝塔系数: {m['beta']:.2f}",
            f"夏普比率: {m['sharpe_ratio']:.2f}",
            f"跟踪误差: {m['tracking_error']:.2f}%",
            f"信息比率: {m['information_ratio']:.2f}",
            f"持仓数量: {len(positions)}只",
        ]) + '\n'

    def _position_section(self, positions) -> str:
        if not positions:
            return '持仓分析:\n- 暂无持仓\n'
        ranked = sorted(positions, key=lambda p: p.unrealized_pnl_percent or 0.0, reverse=True)
        lines = ['持仓分析:', '表现最佳:']
        for p in ranked[:5]:
            lines.append(f"- {p.stock_name}({p.stock_code}): {p.unrealized_pnl_percent or 0.0:+.2f}%，"
                         f"权重{format_percentage(p.weight or 0.0, 1)}")
        lines.append('表现最差:')
        for p in list(reversed(ranked))[:5]:
            lines.append(f"- {p.stock_name}({p.stock_code}): {p.unrealized_pnl_percent or 0.0:+.2f}%，"
                         f"权重{format_percentage(p.weight or 0.0, 1)}")
        return '\n'.join(lines) + '\n'

    def _transaction_section(self, transactions) -> str:
        buys = [t for t in transactions if t.type == 'BUY']
        sells = [t for t in transactions if t.type == 'SELL']
        return '\n'.join([
            '交易分析:',
            f"- 总交易次数: {len(transactions)}",
            f"- 买入交易: {len(buys)}次，金额{format_wan(sum(t.amount for t in buys))}",
            f"- 卖出交易: {len(sells)}次，金额{format_wan(sum(t.amount for t in sells))}",
            f"- 总手续费: {format_currency(sum(t.commission or 0.0 for t in transactions))}",
        ]) + '\n'

    def _alert_section(self, stop_loss_alerts, take_profit_alerts) -> str:
        lines = ['止损止盈预警:']
        for alert in stop_loss_alerts:
            lines.append(f"- [止损] {alert.stock_name}({alert.stock_code}) 现价{alert.current_price:.2f} "
                         f"≤ 止损价{alert.stop_loss_price:.2f}，收益率{alert.loss_percent:.2f}%")
        for alert in take_profit_alerts:
            lines.append(f"- [止盈] {alert.stock_name}({alert.stock_code}) 现价{alert.current_price:.2f} "
                         f"≥ 止盈价{alert.take_profit_price:.2f}，收益率{alert.profit_percent:.2f}%")
        if len(lines) == 1:
            lines.append('- 无触发')
        return '\n'.join(lines) + '\n'

    def _recommendations(self, positions, m: Dict[str, float]) -> List[str]:
        recommendations = []
        if m['total_return'] < 0:
            recommendations.append('当前组合处于亏损状态，建议重新评估投资策略和持仓结构')
        elif m['total_return'] < 5:
            recommendations.append('收益率偏低，建议优化选股策略，关注高成长性标的')

        if m['volatility'] > 20:
            recommendations.append('组合波动率较高，建议增加防御性资产配置')

        if positions and max(p.weight or 0.0 for p in positions) > 0.2:
            recommendations.append('存在权重过高的持仓，建议适当分散以降低集中度风险')

        if positions and m['sharpe_ratio'] < 1.0:
            recommendations.append('风险调整后收益偏低，建议优化风险控制措施')

        if not recommendations:
            recommendations.append('当前投资组合配置合理，建议继续保持现有策略')
        return recommendations

    def _as_dict(self, report: Report) -> Dict:
        return {
            'id': report.id,
            'portfolio_id': report.portfolio_id,
            'type': report.type,
            'title': report.title,
            'summary': report.summary,
            'content': report.content,
            'key_metrics': report.key_metrics,
            'recommendations': report.recommendations,
            'created_at': report.created_at.isoformat() if report.created_at else None,
        }

    def _export_html(self, report: Report) -> str:
        metrics_rows = ''.join(
            f"<tr><th>{html.escape(key)}</th><td>{value}</td></tr>"
            for key, value in (report.key_metrics or {}).items()
        )
        recommendation_items = ''.join(
            f"<li>{html.escape(r)}</li>" for r in (report.recommendations or [])
        )
        return (
            '<!DOCTYPE html>\n<html>\n<head>\n<meta charset="UTF-8">\n'
            f"<title>{html.escape(report.title)}</title>\n"
            '<style>body { font-family: Arial, sans-serif; margin: 20px; } '
            'table { border-collapse: collapse; } th, td { padding: 6px; border-bottom: 1px solid #ddd; }</style>\n'
            '</head>\n<body>\n'
            f"<h1>{html.escape(report.title)}</h1>\n"
            f"<p>{html.escape(report.summary)}</p>\n"
            f"<table>{metrics_rows}</table>\n"
            f"<pre>{html.escape(report.content)}</pre>\n"
            f"<ul>{recommendation_items}</ul>\n"
            '</body>\n</html>\n'
        )

    def _export_csv(self, report: Report) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(['字段', '值'])
        writer.writerow(['标题', report.title])
        writer.writerow(['类型', report.type])
        writer.writerow(['摘要', report.summary])
        for key, value in (report.key_metrics or {}).items():
            writer.writerow([key, value])
        for recommendation in report.recommendations or []:
            writer.writerow(['建议', recommendation])
        return buffer.getvalue()
