"""
Portfolio management endpoints.
"""
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from growguard.api.responses import ok
from growguard.api.routes.positions import PositionResponse
from growguard.core.portfolio_manager import PortfolioManager
from growguard.core.report_generator import ReportGenerator
from growguard.models.base import get_db

router = APIRouter()

class PortfolioCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ''

class PortfolioUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    max_drawdown: Optional[float] = Field(None, ge=0)

class PortfolioResponse(BaseModel):
    id: str
    name: str
    description: Optional[str]
    total_value: float
    total_cost: float
    total_pnl: float
    total_pnl_percent: float
    max_drawdown: float
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class PortfolioDetail(PortfolioResponse):
    positions: List[PositionResponse] = []
    sector_weights: Dict[str, float] = {}


@router.get("")
def list_portfolios(db: Session = Depends(get_db)):
    """List all portfolios, newest first."""
    portfolios = PortfolioManager(db).list_portfolios()
    return ok([PortfolioResponse.model_validate(p) for p in portfolios])

@router.post("", status_code=201)
def create_portfolio(payload: PortfolioCreate, db: Session = Depends(get_db)):
    portfolio = PortfolioManager(db).create_portfolio(payload.name, payload.description)
    return ok(PortfolioResponse.model_validate(portfolio), message="投资组合创建成功")

@router.get("/{portfolio_id}")
def get_portfolio(portfolio_id: str, db: Session = Depends(get_db)):
    """Portfolio with its positions and the sector weight map."""
    manager = PortfolioManager(db)
    portfolio = manager.get_portfolio(portfolio_id)
    detail = PortfolioDetail(
        **PortfolioResponse.model_validate(portfolio).model_dump(),
        positions=[PositionResponse.model_validate(p) for p in manager.list_positions(portfolio_id)],
        sector_weights=manager.sector_weights(portfolio_id),
    )
    return ok(detail)

@router.put("/{portfolio_id}")
def update_portfolio(portfolio_id: str, payload: PortfolioUpdate, db: Session = Depends(get_db)):
    portfolio = PortfolioManager(db).update_portfolio(portfolio_id, **payload.model_dump(exclude_unset=True))
    return ok(PortfolioResponse.model_validate(portfolio), message="投资组合更新成功")

@router.delete("/{portfolio_id}")
def delete_portfolio(portfolio_id: str, db: Session = Depends(get_db)):
    PortfolioManager(db).delete_portfolio(portfolio_id)
    return ok(message="投资组合删除成功")

@router.get("/{portfolio_id}/export")
def export_portfolio(portfolio_id: str, db: Session = Depends(get_db)):
    """CSV export of positions and transactions."""
    content = ReportGenerator(db).export_portfolio_csv(portfolio_id)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="portfolio-{portfolio_id}.csv"'}
    )
