"""
Discipline settings endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from growguard.api.responses import ok
from growguard.core.portfolio_manager import PortfolioManager
from growguard.models.base import get_db

router = APIRouter()

class DisciplineUpdate(BaseModel):
    stop_loss_percent: Optional[float] = Field(None, ge=0, le=1)
    take_profit_percent: Optional[float] = Field(None, ge=0, le=1)
    max_position_weight: Optional[float] = Field(None, ge=0, le=1)
    max_sector_weight: Optional[float] = Field(None, ge=0, le=1)
    rebalance_threshold: Optional[float] = Field(None, ge=0, le=1)

class DisciplineResponse(BaseModel):
    portfolio_id: str
    stop_loss_percent: float
    take_profit_percent: float
    max_position_weight: float
    max_sector_weight: float
    rebalance_threshold: float

    class Config:
        from_attributes = True


@router.get("/{portfolio_id}")
def get_discipline(portfolio_id: str, db: Session = Depends(get_db)):
    """Stored settings, or the defaults when the portfolio has none yet."""
    manager = PortfolioManager(db)
    manager.get_portfolio(portfolio_id)
    return ok(DisciplineResponse.model_validate(manager.get_discipline(portfolio_id)))

@router.put("/{portfolio_id}")
def update_discipline(portfolio_id: str, payload: DisciplineUpdate, db: Session = Depends(get_db)):
    settings = PortfolioManager(db).update_discipline(portfolio_id, **payload.model_dump(exclude_unset=True))
    return ok(DisciplineResponse.model_validate(settings), message="纪律设置更新成功")

@router.get("/{portfolio_id}/check")
def check_discipline(portfolio_id: str, db: Session = Depends(get_db)):
    """Positions and sectors currently breaking the discipline settings."""
    violations = PortfolioManager(db).check_discipline(portfolio_id)
    total = sum(len(items) for items in violations.values())
    return ok(violations, message=f"发现{total}项纪律违规" if total else "未发现纪律违规")
