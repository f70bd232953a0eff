"""Discipline settings database model."""
import uuid

from sqlalchemy import Column, String, Float, TIMESTAMP, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from growguard.models.base import Base

class DisciplineSettings(Base):
    """
    Per-portfolio trading discipline: stop-loss/take-profit bands and weight caps.
    """
    __tablename__ = 'discipline_settings'
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    portfolio_id = Column(
        String(36), ForeignKey('portfolios.id', ondelete='CASCADE'),
        nullable=False, unique=True, index=True
    )
    
    stop_loss_percent = Column(Float, default=0.1)
    take_profit_percent = Column(Float, default=0.2)
    max_position_weight = Column(Float, default=0.2)
    max_sector_weight = Column(Float, default=0.4)
    rebalance_threshold = Column(Float, default=0.05)
    
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())
    
    portfolio = relationship('Portfolio', back_populates='discipline_settings')
