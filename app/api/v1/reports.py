from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.api.errors import http_error
from app.core.exceptions import AppError
from app.dependencies import get_db
from app.schemas.report import ReportConfig, ReportData
from app.services.report_service import ReportService

router = APIRouter()

@router.post("/", response_model=ReportData)
def generate_report(config: ReportConfig, db: Session = Depends(get_db)):
    """
    Build a benchmark table for one metric, optionally blending sources and years
    """
    try:
        return ReportService(db).generate(config)
    except AppError as e:
        raise http_error(e)
