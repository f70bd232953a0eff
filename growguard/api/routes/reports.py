"""
Report endpoints.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from growguard.api.responses import ok
from growguard.core.report_generator import ReportGenerator
from growguard.models.base import get_db
from growguard.utils.constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT, ExportFormat, ReportType

router = APIRouter()

EXPORT_MEDIA_TYPES = {
    ExportFormat.HTML: "text/html; charset=utf-8",
    ExportFormat.CSV: "text/csv; charset=utf-8",
    ExportFormat.JSON: "application/json",
    ExportFormat.TEXT: "text/plain; charset=utf-8",
}

class ReportCreate(BaseModel):
    portfolio_id: str
    type: ReportType = ReportType.CLOSING

class ReportResponse(BaseModel):
    id: str
    portfolio_id: str
    type: str
    title: str
    summary: str
    content: str
    key_metrics: Dict[str, Any]
    recommendations: List[str]
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("")
def list_reports(
    portfolio_id: Optional[str] = Query(None, description="Filter by portfolio"),
    type: Optional[ReportType] = Query(None, description="Filter by report type"),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    db: Session = Depends(get_db)
):
    reports = ReportGenerator(db).list_reports(portfolio_id, type.value if type else None, limit)
    return ok([ReportResponse.model_validate(r) for r in reports])

@router.post("", status_code=201)
def generate_report(payload: ReportCreate, db: Session = Depends(get_db)):
    report = ReportGenerator(db).generate(payload.portfolio_id, payload.type.value)
    return ok(ReportResponse.model_validate(report), message="报告生成成功")

@router.get("/{report_id}")
def get_report(report_id: str, db: Session = Depends(get_db)):
    return ok(ReportResponse.model_validate(ReportGenerator(db).get_report(report_id)))

@router.get("/{report_id}/export")
def export_report(
    report_id: str,
    format: ExportFormat = Query(ExportFormat.HTML, description="html, csv, json or text"),
    db: Session = Depends(get_db)
):
    generator = ReportGenerator(db)
    report = generator.get_report(report_id)
    extension = "txt" if format == ExportFormat.TEXT else format.value
    return Response(
        content=generator.export(report, format.value),
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="report-{report_id}.{extension}"'}
    )
