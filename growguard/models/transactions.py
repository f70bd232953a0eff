"""Transaction database model."""
import uuid

from sqlalchemy import Column, String, Float, Integer, Text, TIMESTAMP, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from growguard.models.base import Base

class Transaction(Base):
    """
    Recorded trades. Each one is applied to the portfolio's positions when recorded.
    """
    __tablename__ = 'transactions'
    __table_args__ = (
        CheckConstraint("type IN ('BUY', 'SELL')", name='ck_transactions_type'),
    )
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    portfolio_id = Column(
        String(36), ForeignKey('portfolios.id', ondelete='CASCADE'),
        nullable=False, index=True
    )
    stock_code = Column(String(6), nullable=False, index=True)
    stock_name = Column(String(50), nullable=False)
    type = Column(String(4), nullable=False)
    
    # Trade details
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    amount = Column(Float, nullable=False)
    commission = Column(Float, default=0.0)
    date = Column(TIMESTAMP, nullable=False, index=True)
    reason = Column(Text, default='')
    
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    
    portfolio = relationship('Portfolio', back_populates='transactions')
