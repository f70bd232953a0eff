"""
Position management endpoints.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from growguard.api.responses import ok
from growguard.core.portfolio_manager import PortfolioManager
from growguard.models.base import get_db
from growguard.utils.constants import InvestmentSector, RiskLevel

router = APIRouter()

class PositionCreate(BaseModel):
    portfolio_id: str
    stock_code: str = Field(..., min_length=6, max_length=6)
    stock_name: str = Field(..., min_length=1, max_length=50)
    sector: InvestmentSector
    quantity: int = Field(..., gt=0)
    avg_cost: float = Field(..., gt=0)
    current_price: Optional[float] = Field(None, gt=0)
    stop_loss: Optional[float] = Field(None, gt=0)
    take_profit: Optional[float] = Field(None, gt=0)
    risk_level: RiskLevel = RiskLevel.MEDIUM

class PositionUpdate(BaseModel):
    stock_name: Optional[str] = Field(None, min_length=1, max_length=50)
    sector: Optional[InvestmentSector] = None
    quantity: Optional[int] = Field(None, gt=0)
    avg_cost: Optional[float] = Field(None, gt=0)
    current_price: Optional[float] = Field(None, gt=0)
    stop_loss: Optional[float] = Field(None, gt=0)
    take_profit: Optional[float] = Field(None, gt=0)
    risk_level: Optional[RiskLevel] = None

class PriceQuote(BaseModel):
    stock_code: str = Field(..., min_length=6, max_length=6)
    current_price: float = Field(..., gt=0)

class PriceRefresh(BaseModel):
    prices: List[PriceQuote]
    portfolio_id: Optional[str] = None

class PositionResponse(BaseModel):
    id: str
    portfolio_id: str
    stock_code: str
    stock_name: str
    sector: str
    quantity: int
    avg_cost: float
    current_price: float
    market_value: float
    unrealized_pnl: float
    unrealized_pnl_percent: float
    weight: float
    stop_loss: Optional[float]
    take_profit: Optional[float]
    risk_level: str
    last_update: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


@router.get("")
def list_positions(
    portfolio_id: Optional[str] = Query(None, description="Filter by portfolio"),
    db: Session = Depends(get_db)
):
    """
    List positions with an optional portfolio filter.
    """
    positions = PortfolioManager(db).list_positions(portfolio_id)
    return ok([PositionResponse.model_validate(p) for p in positions])

@router.post("", status_code=201)
def create_position(payload: PositionCreate, db: Session = Depends(get_db)):
    data = payload.model_dump()
    data['sector'] = payload.sector.value
    data['risk_level'] = payload.risk_level.value
    position = PortfolioManager(db).add_position(**data)
    return ok(PositionResponse.model_validate(position), message="持仓创建成功")

# Declared before /{position_id} so "prices" is not taken as an id
@router.put("/prices")
def refresh_prices(payload: PriceRefresh, db: Session = Depends(get_db)):
    """Batch price refresh; derived fields and weights are recomputed."""
    updated = PortfolioManager(db).refresh_prices(
        [quote.model_dump() for quote in payload.prices],
        portfolio_id=payload.portfolio_id
    )
    return ok({"updated": updated}, message=f"已更新{updated}个持仓价格")

@router.get("/{position_id}")
def get_position(position_id: str, db: Session = Depends(get_db)):
    position = PortfolioManager(db).get_position(position_id)
    return ok(PositionResponse.model_validate(position))

@router.put("/{position_id}")
def update_position(position_id: str, payload: PositionUpdate, db: Session = Depends(get_db)):
    updates = payload.model_dump(exclude_unset=True)
    if payload.sector is not None:
        updates['sector'] = payload.sector.value
    if payload.risk_level is not None:
        updates['risk_level'] = payload.risk_level.value
    position = PortfolioManager(db).update_position(position_id, **updates)
    return ok(PositionResponse.model_validate(position), message="持仓更新成功")

@router.delete("/{position_id}")
def delete_position(position_id: str, db: Session = Depends(get_db)):
    PortfolioManager(db).delete_position(position_id)
    return ok(message="持仓删除成功")
