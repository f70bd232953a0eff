"""Portfolio database model."""
import uuid

from sqlalchemy import Column, String, Float, Text, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from growguard.models.base import Base

class Portfolio(Base):
    """
    Investment portfolio. Totals are maintained from its positions.
    """
    __tablename__ = 'portfolios'
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    description = Column(Text, default='')
    
    # Totals (sums over positions)
    total_value = Column(Float, default=0.0)
    total_cost = Column(Float, default=0.0)
    total_pnl = Column(Float, default=0.0)
    total_pnl_percent = Column(Float, default=0.0)
    max_drawdown = Column(Float, default=0.0)
    
    # Timestamps
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())
    
    positions = relationship(
        'Position', back_populates='portfolio',
        cascade='all, delete-orphan', passive_deletes=True
    )
    transactions = relationship(
        'Transaction', back_populates='portfolio',
        cascade='all, delete-orphan', passive_deletes=True
    )
    discipline_settings = relationship(
        'DisciplineSettings', back_populates='portfolio', uselist=False,
        cascade='all, delete-orphan', passive_deletes=True
    )
    reports = relationship(
        'Report', back_populates='portfolio',
        cascade='all, delete-orphan', passive_deletes=True
    )
