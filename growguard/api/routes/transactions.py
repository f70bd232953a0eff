"""
Transaction endpoints.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from growguard.api.responses import ok
from growguard.core.portfolio_manager import PortfolioManager
from growguard.models.base import get_db
from growguard.utils.constants import (
    DEFAULT_QUERY_LIMIT,
    MAX_QUERY_LIMIT,
    InvestmentSector,
    RiskLevel,
    TransactionType,
)

router = APIRouter()

class TransactionCreate(BaseModel):
    portfolio_id: str
    stock_code: str = Field(..., min_length=6, max_length=6)
    stock_name: str = Field(..., min_length=1, max_length=50)
    type: TransactionType
    quantity: int = Field(..., gt=0)
    price: float = Field(..., gt=0)
    amount: Optional[float] = Field(None, gt=0)
    commission: float = Field(0.0, ge=0)
    date: Optional[datetime] = None
    reason: str = ''
    # Only needed when a BUY opens a new position
    sector: Optional[InvestmentSector] = None
    risk_level: RiskLevel = RiskLevel.MEDIUM

class TransactionResponse(BaseModel):
    id: str
    portfolio_id: str
    stock_code: str
    stock_name: str
    type: str
    quantity: int
    price: float
    amount: float
    commission: float
    date: datetime
    reason: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("")
def list_transactions(
    portfolio_id: Optional[str] = Query(None, description="Filter by portfolio"),
    start_date: Optional[datetime] = Query(None, description="Earliest trade date"),
    end_date: Optional[datetime] = Query(None, description="Latest trade date"),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT, description="Maximum number of results"),
    db: Session = Depends(get_db)
):
    """
    Transaction history, newest first.
    """
    transactions = PortfolioManager(db).list_transactions(portfolio_id, start_date, end_date, limit)
    return ok([TransactionResponse.model_validate(t) for t in transactions])

@router.post("", status_code=201)
def record_transaction(payload: TransactionCreate, db: Session = Depends(get_db)):
    """Record a trade and apply it to the portfolio's positions."""
    data = payload.model_dump()
    data['type'] = payload.type.value
    data['sector'] = payload.sector.value if payload.sector else None
    data['risk_level'] = payload.risk_level.value
    transaction = PortfolioManager(db).record_transaction(**data)
    return ok(TransactionResponse.model_validate(transaction), message="交易记录成功")
