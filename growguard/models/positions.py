"""Position database model."""
import uuid

from sqlalchemy import Column, String, Float, Integer, TIMESTAMP, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from growguard.models.base import Base

class Position(Base):
    """
    A holding inside a portfolio.
    market_value, unrealized P&L and weight are derived and refreshed on every change.
    """
    __tablename__ = 'positions'
    
    # Primary key
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    portfolio_id = Column(
        String(36), ForeignKey('portfolios.id', ondelete='CASCADE'),
        nullable=False, index=True
    )
    stock_code = Column(String(6), nullable=False, index=True)
    stock_name = Column(String(50), nullable=False)
    sector = Column(String(20), nullable=False, index=True)
    
    # Holding
    quantity = Column(Integer, nullable=False)
    avg_cost = Column(Float, nullable=False)
    current_price = Column(Float, nullable=False)
    
    # Derived
    market_value = Column(Float, nullable=False, default=0.0)
    unrealized_pnl = Column(Float, default=0.0)
    unrealized_pnl_percent = Column(Float, default=0.0)
    weight = Column(Float, default=0.0)
    
    # Discipline thresholds (static once set)
    stop_loss = Column(Float)
    take_profit = Column(Float)
    
    # Risk tag
    risk_level = Column(String(10), default='medium')
    
    # Timestamps
    last_update = Column(TIMESTAMP, nullable=False, server_default=func.now())
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())
    
    portfolio = relationship('Portfolio', back_populates='positions')
