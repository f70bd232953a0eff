"""
Portfolio Manager

Owns the CRUD operations on portfolios, positions, transactions and discipline
settings, and keeps every derived figure (market value, P&L, weights, portfolio
totals) consistent after each mutation.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from config.settings import get_risk_limits
from growguard.core.exceptions import InvalidInputError, NotFoundError
from growguard.models.discipline import DisciplineSettings
from growguard.models.portfolios import Portfolio
from growguard.models.positions import Position
from growguard.models.transactions import Transaction
from growguard.utils import metrics
from growguard.utils.constants import (
    DEFAULT_QUERY_LIMIT,
    RECENT_TRANSACTIONS_LIMIT,
    SECTORS,
    RiskLevel,
    TransactionType,
)
from growguard.utils.logging import get_logger

logger = get_logger(__name__)

PORTFOLIO_FIELDS = ('name', 'description', 'max_drawdown')
POSITION_FIELDS = (
    'stock_name', 'sector', 'quantity', 'avg_cost', 'current_price',
    'stop_loss', 'take_profit', 'risk_level'
)
DISCIPLINE_FIELDS = (
    'stop_loss_percent', 'take_profit_percent', 'max_position_weight',
    'max_sector_weight', 'rebalance_threshold'
)

class PortfolioManager:
    """
    Portfolio bookkeeping over one database session.

    Every mutating method commits before returning.
    """

    def __init__(self, db: Session):
        self.db = db

    # ========== PORTFOLIOS ==========

    def list_portfolios(self) -> List[Portfolio]:
        return self.db.query(Portfolio).order_by(desc(Portfolio.created_at)).all()

    def get_portfolio(self, portfolio_id: str) -> Portfolio:
        portfolio = self.db.query(Portfolio).filter(Portfolio.id == portfolio_id).first()
        if not portfolio:
            raise NotFoundError(f"投资组合不存在: {portfolio_id}")
        return portfolio

    def create_portfolio(self, name: str, description: str = '') -> Portfolio:
        if not name or not name.strip():
            raise InvalidInputError("投资组合名称不能为空")

        portfolio = Portfolio(name=name.strip(), description=description or '')
        self.db.add(portfolio)
        self.db.commit()
        self.db.refresh(portfolio)

        logger.info("Portfolio created", portfolio_id=portfolio.id, name=portfolio.name)
        return portfolio

    def update_portfolio(self, portfolio_id: str, **updates) -> Portfolio:
        portfolio = self.get_portfolio(portfolio_id)
        for key, value in updates.items():
            if key in PORTFOLIO_FIELDS and value is not None:
                setattr(portfolio, key, value)
        self.db.commit()
        self.db.refresh(portfolio)
        return portfolio

    def delete_portfolio(self, portfolio_id: str) -> None:
        portfolio = self.get_portfolio(portfolio_id)
        self.db.delete(portfolio)
        self.db.commit()
        logger.info("Portfolio deleted", portfolio_id=portfolio_id)

    def sector_weights(self, portfolio_id: str) -> Dict[str, float]:
        """Weight per sector, covering all six sectors (0.0 where nothing is held)."""
        weights = {sector: 0.0 for sector in SECTORS}
        for position in self._positions(portfolio_id):
            weights[position.sector] = weights.get(position.sector, 0.0) + (position.weight or 0.0)
        return weights

    # ========== POSITIONS ==========

    def list_positions(self, portfolio_id: Optional[str] = None) -> List[Position]:
        query = self.db.query(Position)
        if portfolio_id:
            query = query.filter(Position.portfolio_id == portfolio_id)
        return query.order_by(desc(Position.created_at)).all()

    def get_position(self, position_id: str) -> Position:
        position = self.db.query(Position).filter(Position.id == position_id).first()
        if not position:
            raise NotFoundError(f"持仓不存在: {position_id}")
        return position

    def add_position(
        self,
        portfolio_id: str,
        stock_code: str,
        stock_name: str,
        sector: str,
        quantity: int,
        avg_cost: float,
        current_price: Optional[float] = None,
        stop_loss: Optional[float] = None,
        take_profit: Optional[float] = None,
        risk_level: str = RiskLevel.MEDIUM.value
    ) -> Position:
        """
        Open a position.

        Missing stop_loss / take_profit are set from the portfolio's discipline
        band around the entry cost and are never recalculated afterwards.
        """
        portfolio = self.get_portfolio(portfolio_id)
        current_price = current_price if current_price is not None else avg_cost
        self._validate_position(stock_code, sector, quantity, avg_cost, current_price, risk_level)

        discipline = self.get_discipline(portfolio_id)
        if stop_loss is None:
            stop_loss = round(avg_cost * (1 - discipline.stop_loss_percent), 2)
        if take_profit is None:
            take_profit = round(avg_cost * (1 + discipline.take_profit_percent), 2)

        now = datetime.utcnow()
        position = Position(
            portfolio_id=portfolio.id,
            stock_code=stock_code,
            stock_name=stock_name,
            sector=sector,
            quantity=quantity,
            avg_cost=avg_cost,
            current_price=current_price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            risk_level=risk_level,
            last_update=now,
            created_at=now,
        )
        self.db.add(position)
        self.db.flush()

        self.recalculate(portfolio)
        self.db.commit()
        self.db.refresh(position)

        logger.info(
            "Position opened",
            portfolio_id=portfolio_id,
            stock_code=stock_code,
            quantity=quantity,
            avg_cost=avg_cost
        )
        return position

    def update_position(self, position_id: str, **updates) -> Position:
        position = self.get_position(position_id)
        for key, value in updates.items():
            if key in POSITION_FIELDS and value is not None:
                setattr(position, key, value)

        try:
            self._validate_position(
                position.stock_code, position.sector, position.quantity,
                position.avg_cost, position.current_price, position.risk_level
            )
        except InvalidInputError:
            self.db.rollback()
            raise
        position.last_update = datetime.utcnow()

        self.recalculate(position.portfolio)
        self.db.commit()
        self.db.refresh(position)
        return position

    def delete_position(self, position_id: str) -> None:
        position = self.get_position(position_id)
        portfolio = position.portfolio
        self.db.delete(position)
        self.db.flush()

        self.recalculate(portfolio)
        self.db.commit()
        logger.info("Position deleted", position_id=position_id, portfolio_id=portfolio.id)

    def refresh_prices(self, prices: Iterable[Dict], portfolio_id: Optional[str] = None) -> int:
        """
        Apply a batch of quotes.

        Args:
            prices: [{stock_code, current_price}]
            portfolio_id: Restrict the update to one portfolio

        Returns:
            Number of positions updated
        """
        quotes = {}
        for item in prices:
            price = item['current_price']
            if price is None or price <= 0:
                raise InvalidInputError(f"股票{item['stock_code']}价格必须为正数")
            quotes[item['stock_code']] = price

        if not quotes:
            return 0

        query = self.db.query(Position).filter(Position.stock_code.in_(list(quotes)))
        if portfolio_id:
            query = query.filter(Position.portfolio_id == portfolio_id)

        now = datetime.utcnow()
        touched = {}
        updated = 0
        for position in query.all():
            position.current_price = quotes[position.stock_code]
            position.last_update = now
            touched[position.portfolio_id] = position.portfolio
            updated += 1

        for portfolio in touched.values():
            self.recalculate(portfolio)
        self.db.commit()

        logger.info("Prices refreshed", quotes=len(quotes), positions=updated)
        return updated

    def recalculate(self, portfolio: Portfolio) -> None:
        """
        Recompute position-derived fields, weights and portfolio totals.
        An empty portfolio ends with all totals at zero.
        """
        positions = self._positions(portfolio.id)

        total_value = 0.0
        total_cost = 0.0
        for position in positions:
            cost = position.quantity * position.avg_cost
            position.market_value = position.quantity * position.current_price
            position.unrealized_pnl = position.market_value - cost
            position.unrealized_pnl_percent = position.unrealized_pnl / cost * 100 if cost > 0 else 0.0
            total_value += position.market_value
            total_cost += cost

        for position in positions:
            position.weight = position.market_value / total_value if total_value > 0 else 0.0

        portfolio.total_value = total_value
        portfolio.total_cost = total_cost
        portfolio.total_pnl = total_value - total_cost
        portfolio.total_pnl_percent = portfolio.total_pnl / total_cost * 100 if total_cost > 0 else 0.0
        if portfolio.total_pnl_percent < 0:
            drawdown = -portfolio.total_pnl_percent / 100
            portfolio.max_drawdown = max(portfolio.max_drawdown or 0.0, drawdown)

        metrics.update_portfolio_value(portfolio.id, total_value)

    # ========== TRANSACTIONS ==========

    def list_transactions(
        self,
        portfolio_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = DEFAULT_QUERY_LIMIT
    ) -> List[Transaction]:
        query = self.db.query(Transaction)
        if portfolio_id:
            query = query.filter(Transaction.portfolio_id == portfolio_id)
        if start_date:
            query = query.filter(Transaction.date >= start_date)
        if end_date:
            query = query.filter(Transaction.date <= end_date)
        return query.order_by(desc(Transaction.date)).limit(limit).all()

    def record_transaction(
        self,
        portfolio_id: str,
        stock_code: str,
        stock_name: str,
        type: str,
        quantity: int,
        price: float,
        amount: Optional[float] = None,
        commission: float = 0.0,
        date: Optional[datetime] = None,
        reason: str = '',
        sector: Optional[str] = None,
        risk_level: str = RiskLevel.MEDIUM.value
    ) -> Transaction:
        """
        Record a trade and apply it to the portfolio's position.

        BUY averages into an existing position or opens a new one (sector
        required). SELL reduces the position, scaling its cost basis, and
        removes it when the quantity reaches zero.

        Raises:
            InvalidInputError: bad quantity/price, unknown type, SELL without
                a position or for more shares than held
        """
        portfolio = self.get_portfolio(portfolio_id)
        type = (type or '').upper()
        if type not in (TransactionType.BUY.value, TransactionType.SELL.value):
            raise InvalidInputError(f"交易类型无效: {type}")
        if quantity is None or quantity <= 0:
            raise InvalidInputError("交易数量必须为正数")
        if price is None or price <= 0:
            raise InvalidInputError("交易价格必须为正数")
        if commission is not None and commission < 0:
            raise InvalidInputError("手续费不能为负数")

        amount = amount if amount is not None else quantity * price
        position = self.db.query(Position).filter(
            Position.portfolio_id == portfolio_id,
            Position.stock_code == stock_code
        ).first()

        now = datetime.utcnow()
        if type == TransactionType.BUY.value:
            if position:
                new_quantity = position.quantity + quantity
                position.avg_cost = (position.quantity * position.avg_cost + amount) / new_quantity
                position.quantity = new_quantity
                position.current_price = price
                position.last_update = now
            else:
                if not sector:
                    raise InvalidInputError(f"新建持仓{stock_code}需要指定赛道")
                self._validate_position(stock_code, sector, quantity, amount / quantity, price, risk_level)
                discipline = self.get_discipline(portfolio_id)
                avg_cost = amount / quantity
                self.db.add(Position(
                    portfolio_id=portfolio_id,
                    stock_code=stock_code,
                    stock_name=stock_name,
                    sector=sector,
                    quantity=quantity,
                    avg_cost=avg_cost,
                    current_price=price,
                    stop_loss=round(avg_cost * (1 - discipline.stop_loss_percent), 2),
                    take_profit=round(avg_cost * (1 + discipline.take_profit_percent), 2),
                    risk_level=risk_level,
                    last_update=now,
                    created_at=now,
                ))
        else:
            if not position:
                raise InvalidInputError(f"没有{stock_code}的持仓，无法卖出")
            if quantity > position.quantity:
                raise InvalidInputError(
                    f"卖出数量{quantity}超过持仓数量{position.quantity}"
                )
            remaining = position.quantity - quantity
            if remaining == 0:
                self.db.delete(position)
            else:
                # Average cost is unchanged; the cost basis scales with quantity
                position.quantity = remaining
                position.current_price = price
                position.last_update = now

        transaction = Transaction(
            portfolio_id=portfolio_id,
            stock_code=stock_code,
            stock_name=stock_name,
            type=type,
            quantity=quantity,
            price=price,
            amount=amount,
            commission=commission or 0.0,
            date=date or now,
            reason=reason or '',
        )
        self.db.add(transaction)
        self.db.flush()

        self.recalculate(portfolio)
        self.db.commit()
        self.db.refresh(transaction)

        metrics.record_transaction(type)
        logger.info(
            "Transaction recorded",
            portfolio_id=portfolio_id,
            stock_code=stock_code,
            type=type,
            quantity=quantity,
            price=price
        )
        return transaction

    # ========== DISCIPLINE ==========

    def get_discipline(self, portfolio_id: str) -> DisciplineSettings:
        """Stored settings, or an unsaved defaults object when none exist."""
        settings = self.db.query(DisciplineSettings).filter(
            DisciplineSettings.portfolio_id == portfolio_id
        ).first()
        if settings:
            return settings
        defaults = get_risk_limits()['discipline_defaults']
        return DisciplineSettings(portfolio_id=portfolio_id, **defaults)

    def update_discipline(self, portfolio_id: str, **updates) -> DisciplineSettings:
        self.get_portfolio(portfolio_id)
        for key, value in updates.items():
            if key in DISCIPLINE_FIELDS and value is not None and not 0 <= value <= 1:
                raise InvalidInputError(f"{key}必须在0到1之间")

        settings = self.db.query(DisciplineSettings).filter(
            DisciplineSettings.portfolio_id == portfolio_id
        ).first()
        if not settings:
            settings = self.get_discipline(portfolio_id)
            self.db.add(settings)

        for key, value in updates.items():
            if key in DISCIPLINE_FIELDS and value is not None:
                setattr(settings, key, value)

        self.db.commit()
        self.db.refresh(settings)
        logger.info("Discipline settings updated", portfolio_id=portfolio_id)
        return settings

    def check_discipline(self, portfolio_id: str) -> Dict[str, List[Dict]]:
        """
        List positions and sectors that break the portfolio's discipline.

        P&L thresholds compare unrealized_pnl_percent (percent) with the
        stop-loss / take-profit fractions scaled to percent.
        """
        self.get_portfolio(portfolio_id)
        discipline = self.get_discipline(portfolio_id)
        positions = self._positions(portfolio_id)

        position_limit = []
        stop_loss = []
        take_profit = []
        for position in positions:
            if (position.weight or 0.0) > discipline.max_position_weight:
                position_limit.append({
                    'position_id': position.id,
                    'stock_code': position.stock_code,
                    'stock_name': position.stock_name,
                    'weight': position.weight,
                    'limit': discipline.max_position_weight,
                })
            pnl_percent = position.unrealized_pnl_percent or 0.0
            if pnl_percent <= -discipline.stop_loss_percent * 100:
                stop_loss.append({
                    'position_id': position.id,
                    'stock_code': position.stock_code,
                    'stock_name': position.stock_name,
                    'pnl_percent': pnl_percent,
                })
            if pnl_percent >= discipline.take_profit_percent * 100:
                take_profit.append({
                    'position_id': position.id,
                    'stock_code': position.stock_code,
                    'stock_name': position.stock_name,
                    'pnl_percent': pnl_percent,
                })

        sector_limit = [
            {'sector': sector, 'weight': weight, 'limit': discipline.max_sector_weight}
            for sector, weight in self.sector_weights(portfolio_id).items()
            if weight > discipline.max_sector_weight
        ]

        return {
            'position_limit': position_limit,
            'sector_limit': sector_limit,
            'stop_loss': stop_loss,
            'take_profit': take_profit,
        }

    # ========== DASHBOARD ==========

    def overview(self) -> Dict:
        """Totals across every portfolio, per-sector stats and recent trades."""
        portfolios = self.list_portfolios()
        positions = self.list_positions()

        total_value = sum(p.total_value or 0.0 for p in portfolios)
        total_cost = sum(p.total_cost or 0.0 for p in portfolios)
        total_pnl = sum(p.total_pnl or 0.0 for p in portfolios)

        sectors: Dict[str, Dict] = {}
        for position in positions:
            stats = sectors.setdefault(position.sector, {
                'name': position.sector, 'value': 0.0, 'count': 0, 'pnl': 0.0
            })
            stats['value'] += position.market_value or 0.0
            stats['count'] += 1
            stats['pnl'] += position.unrealized_pnl or 0.0

        for stats in sectors.values():
            stats['weight'] = stats['value'] / total_value if total_value > 0 else 0.0
            stats['pnl_percent'] = stats['pnl'] / stats['value'] * 100 if stats['value'] > 0 else 0.0

        return {
            'portfolios': {
                'total': len(portfolios),
                'total_value': total_value,
                'total_cost': total_cost,
                'total_pnl': total_pnl,
                'total_pnl_percent': total_pnl / total_cost * 100 if total_cost > 0 else 0.0,
            },
            'positions': {
                'total': len(positions),
                'profitable': sum(1 for p in positions if (p.unrealized_pnl or 0.0) > 0),
                'losing': sum(1 for p in positions if (p.unrealized_pnl or 0.0) < 0),
            },
            'sectors': list(sectors.values()),
            'recent_transactions': self.list_transactions(limit=RECENT_TRANSACTIONS_LIMIT),
        }

    # ========== HELPERS ==========

    def _positions(self, portfolio_id: str) -> List[Position]:
        return self.db.query(Position).filter(
            Position.portfolio_id == portfolio_id
        ).order_by(Position.created_at).all()

    def _validate_position(
        self,
        stock_code: str,
        sector: str,
        quantity: int,
        avg_cost: float,
        current_price: float,
        risk_level: Optional[str]
    ) -> None:
        if not stock_code or len(stock_code) != 6:
            raise InvalidInputError(f"股票代码必须为6位: {stock_code}")
        if sector not in SECTORS:
            raise InvalidInputError(f"未知赛道: {sector}")
        if quantity is None or quantity <= 0:
            raise InvalidInputError("持仓数量必须为正数")
        if avg_cost is None or avg_cost <= 0:
            raise InvalidInputError("平均成本必须为正数")
        if current_price is None or current_price <= 0:
            raise InvalidInputError("当前价格必须为正数")
        if risk_level not in (level.value for level in RiskLevel):
            raise InvalidInputError(f"风险等级无效: {risk_level}")
