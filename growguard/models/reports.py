"""Report database model."""
import uuid

from sqlalchemy import Column, String, Text, TIMESTAMP, ForeignKey, CheckConstraint, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from growguard.models.base import Base

class Report(Base):
    """
    Generated portfolio reports (morning, closing, alert).
    """
    __tablename__ = 'reports'
    __table_args__ = (
        CheckConstraint("type IN ('MORNING', 'CLOSING', 'ALERT')", name='ck_reports_type'),
    )
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    portfolio_id = Column(
        String(36), ForeignKey('portfolios.id', ondelete='CASCADE'),
        nullable=False, index=True
    )
    type = Column(String(10), nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    summary = Column(Text, nullable=False)
    key_metrics = Column(JSON, nullable=False, default=dict)
    recommendations = Column(JSON, nullable=False, default=list)
    
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), index=True)
    
    portfolio = relationship('Portfolio', back_populates='reports')
